"""Pytest fixtures for vmbuild tests.

FakeEnvironment stands in for the VM: it records every instruction with its
privilege and working directory, and answers with scripted exit codes.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import pytest

from vmbuild.environment import Environment
from vmbuild.model import Privilege
from vmbuild.ui.console import Console, set_console


class FakeEnvironment(Environment):
    name = "fake"

    def __init__(
        self,
        workdir: str = "/project",
        *,
        available: bool = True,
        rules: Optional[List[Tuple[str, int]]] = None,
        tools: Optional[set] = None,
        installs_tool: str = "cargo",
    ):
        super().__init__(workdir=workdir)
        self.available = available
        self.rules = list(rules or [])      # (substring, exit code); first match wins
        self.tools = set(tools or ())
        self.installs_tool = installs_tool
        self.calls: List[Tuple[str, Privilege, Optional[str]]] = []
        self.applied: List[str] = []         # instructions that exited 0

    def is_available(self) -> bool:
        return self.available

    def run(self, instruction, privilege=Privilege.UNPRIVILEGED, cwd=None) -> int:
        self.calls.append((instruction, privilege, cwd))

        if "command -v" in instruction:
            return 0 if any(f"command -v {t}" in instruction for t in self.tools) else 1

        code = 0
        for needle, rule_code in self.rules:
            if needle in instruction:
                code = rule_code
                break

        if code == 0:
            self.applied.append(instruction)
            if instruction.startswith("sh ") and "installer" in instruction:
                self.tools.add(self.installs_tool)
        return code

    @property
    def instructions(self) -> List[str]:
        return [c[0] for c in self.calls]


@pytest.fixture(autouse=True)
def quiet_console():
    set_console(Console(debug=False))
    yield


@pytest.fixture
def fake_env():
    return FakeEnvironment()
