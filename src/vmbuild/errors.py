# errors.py
from __future__ import annotations

from dataclasses import dataclass, field


class VMBuildError(Exception):
    """Base class for every provisioning/build failure."""


@dataclass
class EnvironmentUnavailable(VMBuildError):
    """The target environment can't be reached (e.g. the VM isn't running)."""
    environment: str
    reason: str = "not reachable"

    def __str__(self) -> str:
        return f"environment '{self.environment}' unavailable: {self.reason}"


class InstallError(VMBuildError):
    """Toolchain installation failed."""


@dataclass
class NetworkFetchFailed(InstallError):
    url: str
    exit_code: int

    def __str__(self) -> str:
        return f"could not fetch installer from {self.url} (exit={self.exit_code})"


@dataclass
class InstallScriptFailed(InstallError):
    url: str
    exit_code: int
    message: str = ""

    def __str__(self) -> str:
        msg = f"installer from {self.url} failed (exit={self.exit_code})"
        if self.message:
            msg += f": {self.message}"
        return msg


@dataclass
class BuildError(VMBuildError):
    substep: str
    cmd: str
    exit_code: int

    def __str__(self) -> str:
        return f"build substep '{self.substep}' failed (exit={self.exit_code}): {self.cmd}"


@dataclass
class StepFailure(VMBuildError):
    step: str
    cmd: str
    exit_code: int

    def __str__(self) -> str:
        return f"step '{self.step}' failed (exit={self.exit_code}): {self.cmd}"


@dataclass
class PipelineError(VMBuildError):
    """
    Wraps the first failure of a pipeline run with the step it happened in.
    failed_step is None when the environment was unavailable before any step.
    """
    failed_step: str | None
    cause: Exception
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        where = f"step '{self.failed_step}'" if self.failed_step else "before first step"
        lines = [f"{type(self.cause).__name__} at {where}: {self.cause}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)
