# pipeline.py
from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence

from .build import stage_from_step_data
from .environment import Environment
from .errors import EnvironmentUnavailable, PipelineError, VMBuildError
from .model import PipelineResult, PipelineState, Step
from .runner import run_shell_step
from .toolchain import installer_from_step_data
from .ui.console import get_console


def _run_toolchain_step(environment: Environment, step: Step) -> None:
    installer_from_step_data(step.config, privilege=step.privilege).install(environment)


def _run_build_test_step(environment: Environment, step: Step) -> None:
    project_path = step.cwd or environment.workdir
    stage_from_step_data(step.config, privilege=step.privilege).run(environment, project_path)


STEP_KINDS: Dict[str, Callable[[Environment, Step], None]] = {
    "sh": run_shell_step,
    "toolchain": _run_toolchain_step,
    "build-test": _run_build_test_step,
}


def validate_steps(steps: Sequence[Step]) -> List[Step]:
    steps = list(steps)
    if not steps:
        raise ValueError("pipeline must have at least one step")

    seen = set()
    for s in steps:
        if not isinstance(s, Step):
            raise TypeError(f"pipeline entries must be Step, got {type(s).__name__}")
        if s.name in seen:
            raise ValueError(f"Duplicate step name: {s.name}")
        if s.kind not in STEP_KINDS:
            raise ValueError(f"Step '{s.name}' has unknown kind {s.kind!r}")
        if s.kind == "sh" and not s.run:
            raise ValueError(f"Step '{s.name}' has no instructions")
        seen.add(s.name)
    return steps


class ProvisioningPipeline:
    """
    Ordered, fail-fast sequence of steps run against one environment.

    State machine:
        NOT_STARTED -> RUNNING(index) -> SUCCEEDED | FAILED(index)

    A pipeline object runs once; terminal states have no way back.
    """

    def __init__(self, steps: Sequence[Step]):
        self.steps = validate_steps(steps)
        self.state = PipelineState.NOT_STARTED
        self.current_index: Optional[int] = None
        self.result: Optional[PipelineResult] = None

    def execute(self, environment: Environment) -> PipelineResult:
        if self.state is not PipelineState.NOT_STARTED:
            raise RuntimeError(f"pipeline already {self.state.value}; build a new one to run again")

        console = get_console()
        executed: List[str] = []

        try:
            environment.check_available()
        except EnvironmentUnavailable as e:
            return self._finish(PipelineState.FAILED, executed, PipelineError(failed_step=None, cause=e), None)

        self.state = PipelineState.RUNNING
        for index, step in enumerate(self.steps):
            self.current_index = index
            console.print_step(step.name, step.privilege.value)
            executed.append(step.name)
            try:
                STEP_KINDS[step.kind](environment, step)
            except VMBuildError as e:
                details = {"index": index, "privilege": step.privilege.value}
                error = PipelineError(failed_step=step.name, cause=e, details=details)
                console.print_failure(step.name, str(e), exit_code=getattr(e, "exit_code", None))
                return self._finish(PipelineState.FAILED, executed, error, index)
            console.print_success(step.name)

        return self._finish(PipelineState.SUCCEEDED, executed, None, None)

    def _finish(
        self,
        state: PipelineState,
        executed: List[str],
        error: Optional[PipelineError],
        failed_index: Optional[int],
    ) -> PipelineResult:
        self.state = state
        self.result = PipelineResult(
            state=state,
            executed=executed,
            error=error,
            failed_index=failed_index,
        )
        return self.result


def execute(environment: Environment, steps: Sequence[Step]) -> PipelineResult:
    """Run `steps` in order against `environment`, stopping at the first failure."""
    return ProvisioningPipeline(steps).execute(environment)
