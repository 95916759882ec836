# build.py
from __future__ import annotations

from typing import List, Sequence, Tuple

from .environment import Environment
from .errors import BuildError
from .model import Privilege
from .runner import run_instruction
from .ui.console import get_console

DEFAULT_SUBSTEPS: List[Tuple[str, str]] = [
    ("build", "cargo build"),
    ("build-examples", "cargo build --examples"),
    ("test", "cargo test"),
]


class BuildTestStage:
    """
    Build the main artifact, then the examples, then run the tests, inside
    the synced project directory. Stops at the first failing substep.
    """

    def __init__(
        self,
        substeps: Sequence[Tuple[str, str]] | None = None,
        *,
        env_file: str | None = "$HOME/.cargo/env",
        privilege: Privilege = Privilege.UNPRIVILEGED,
    ):
        self.substeps = list(DEFAULT_SUBSTEPS if substeps is None else substeps)
        if not self.substeps:
            raise ValueError("BuildTestStage needs at least one substep")
        self.env_file = env_file
        self.privilege = privilege

    def _command(self, cmd: str) -> str:
        if not self.env_file:
            return cmd
        return f'if [ -f "{self.env_file}" ]; then . "{self.env_file}"; fi; {cmd}'

    def run(self, environment: Environment, project_path: str) -> None:
        console = get_console()
        for substep, cmd in self.substeps:
            console.print_substep(substep, cmd)
            code = run_instruction(environment, self._command(cmd), self.privilege, cwd=project_path)
            if code != 0:
                raise BuildError(substep=substep, cmd=cmd, exit_code=code)


def stage_from_step_data(
    data: dict | None,
    privilege: Privilege = Privilege.UNPRIVILEGED,
) -> BuildTestStage:
    """Build the stage a "build-test" step describes."""
    data = data or {}
    substeps = data.get("substeps")
    if substeps is not None:
        substeps = [tuple(s) for s in substeps]
    return BuildTestStage(
        substeps,
        env_file=data.get("env_file", "$HOME/.cargo/env"),
        privilege=privilege,
    )
