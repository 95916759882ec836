from .dsl import sh, sudo, apt_install, toolchain, build_test, install_example, pl, default_pipeline
from .pipeline import ProvisioningPipeline, execute
from .model import Privilege, Step, PipelineState, PipelineResult

__all__ = [
    "sh", "sudo", "apt_install", "toolchain", "build_test", "install_example", "pl", "default_pipeline",
    "ProvisioningPipeline", "execute", "Privilege", "Step", "PipelineState", "PipelineResult",
]
