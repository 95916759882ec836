# runner.py
from __future__ import annotations

import runpy
import sys
from pathlib import Path
from typing import List

from .environment import Environment
from .errors import StepFailure
from .model import Privilege, Step
from .ui.console import get_console


def run_instruction(
    environment: Environment,
    instruction: str,
    privilege: Privilege = Privilege.UNPRIVILEGED,
    cwd: str | None = None,
) -> int:
    """
    Run one instruction inside `environment` and return its exit status.

    Non-zero exits are returned, not raised. Raises EnvironmentUnavailable
    when the environment can't be reached.
    """
    environment.check_available()
    get_console().print_debug(f"{environment.name} [{privilege.value}] $ {instruction}")
    # the child writes straight to fd 1/2; our buffered headers must land first
    sys.stdout.flush()
    sys.stderr.flush()
    return environment.run(instruction, privilege, cwd=cwd)


def run_shell_step(environment: Environment, step: Step) -> None:
    """Run every instruction of a plain shell step; raise StepFailure on the first non-zero exit."""
    for instruction in step.run:
        code = run_instruction(environment, instruction, step.privilege, cwd=step.cwd)
        if code != 0:
            raise StepFailure(step=step.name, cmd=instruction, exit_code=code)


# ----------------------------------------------------------------------
# Pipeline loading (local file)
# ----------------------------------------------------------------------

def load_pipeline(path: str | Path) -> List[Step]:
    """
    Load a pipeline from a python file path.

    The file must define either:
      - pipeline() -> List[Step]
      - STEPS = [Step, ...]
    """
    pl_path = Path(path).expanduser().resolve()
    if not pl_path.exists():
        raise FileNotFoundError(f"Pipeline file not found: {pl_path}")
    if pl_path.suffix != ".py":
        raise ValueError(f"Pipeline must be a .py file, got: {pl_path.name}")

    module_name = f"vmbuild_pipeline_{pl_path.stem}"
    globals_dict = runpy.run_path(str(pl_path), run_name=module_name)

    steps = None
    if "pipeline" in globals_dict and callable(globals_dict["pipeline"]):
        try:
            steps = globals_dict["pipeline"]()
        except TypeError as e:
            if "positional argument" in str(e):
                raise TypeError(
                    "Your pipeline() is being called with arguments (name collision with the helper). "
                    "Use the `pl` helper instead: `from vmbuild.dsl import pl` then "
                    "`def pipeline(): return pl(sudo(...), build_test(...))`"
                ) from e
            raise
    elif "STEPS" in globals_dict:
        steps = globals_dict["STEPS"]

    if not isinstance(steps, list) or not all(isinstance(s, Step) for s in steps):
        raise TypeError(
            "Pipeline must return/define a List[Step]. "
            "Define pipeline() -> List[Step] or STEPS = [Step, ...]."
        )

    return steps
