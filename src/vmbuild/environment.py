# environment.py
from __future__ import annotations

import os
import shlex
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from .errors import EnvironmentUnavailable
from .model import Privilege


class Environment:
    """
    Target execution context for steps (the VM, or the local host).

    Subclasses implement `is_available` and `_invoke`; privilege handling and
    working-directory handling are shared so every step is dispatched the
    same way regardless of where it runs.
    """

    name = "environment"

    def __init__(self, workdir: str = "."):
        self.workdir = workdir

    def is_available(self) -> bool:
        raise NotImplementedError

    def check_available(self) -> None:
        if not self.is_available():
            raise EnvironmentUnavailable(environment=self.name)

    def is_root(self) -> bool:
        return False

    def wrap(self, instruction: str, privilege: Privilege, cwd: str | None = None) -> str:
        """Build the shell line actually executed for an instruction."""
        target = cwd or self.workdir
        line = instruction
        if target:
            # cd on its own line: nothing in `instruction` may run elsewhere
            line = f"cd {shlex.quote(target)} || exit 1\n{instruction}"
        if privilege is Privilege.ELEVATED and not self.is_root():
            line = f"sudo -H sh -c {shlex.quote(line)}"
        return line

    def run(self, instruction: str, privilege: Privilege = Privilege.UNPRIVILEGED, cwd: str | None = None) -> int:
        return self._invoke(self.wrap(instruction, privilege, cwd))

    def has_tool(
        self,
        tool: str,
        env_file: str | None = None,
        privilege: Privilege = Privilege.UNPRIVILEGED,
    ) -> bool:
        """
        Probe for a tool on PATH. Never cached: each call asks again.

        `env_file` is sourced first when it exists, for tools whose installer
        only puts them on PATH for login shells.
        """
        probe = f"command -v {shlex.quote(tool)} >/dev/null 2>&1"
        if env_file:
            probe = f'if [ -f "{env_file}" ]; then . "{env_file}"; fi; {probe}'
        self.check_available()
        return self.run(probe, privilege, cwd="/") == 0

    def _invoke(self, line: str) -> int:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, workdir={self.workdir!r})"


class LocalEnvironment(Environment):
    """Runs instructions with /bin/sh on this host; output goes straight to the terminal."""

    name = "local"

    def __init__(self, workdir: str = ".", env: Optional[Dict[str, str]] = None):
        super().__init__(workdir=str(Path(workdir).expanduser()))
        self.env = env or {}

    def is_available(self) -> bool:
        return Path(self.workdir).is_dir()

    def is_root(self) -> bool:
        return hasattr(os, "geteuid") and os.geteuid() == 0

    def _invoke(self, line: str) -> int:
        env = os.environ.copy()
        env.update(self.env)
        proc = subprocess.run(line, shell=True, env=env)
        return proc.returncode


class VagrantEnvironment(Environment):
    """
    Adapter over the `vagrant` CLI.

    The Vagrantfile owns the base box and the synced folder; this class only
    asks vagrant whether the machine is running, boots it on request, and
    runs instructions with `vagrant ssh -c`.
    """

    def __init__(self, vagrant_dir: str = ".", machine: str = "default", workdir: str = "/project"):
        super().__init__(workdir=workdir)
        self.vagrant_dir = str(Path(vagrant_dir).expanduser().resolve())
        self.machine = machine
        self.name = f"vagrant:{machine}"

    def _vagrant(self, *args: str, capture: bool = False) -> subprocess.CompletedProcess:
        cmd: List[str] = ["vagrant", *args]
        return subprocess.run(
            cmd,
            cwd=self.vagrant_dir,
            text=True,
            capture_output=capture,
        )

    def state(self) -> str | None:
        """Machine state as reported by `vagrant status --machine-readable`."""
        try:
            proc = self._vagrant("status", self.machine, "--machine-readable", capture=True)
        except FileNotFoundError:
            return None
        if proc.returncode != 0:
            return None
        # timestamp,target,type,data
        for line in proc.stdout.splitlines():
            parts = line.split(",")
            if len(parts) >= 4 and parts[2] == "state":
                return parts[3]
        return None

    def is_available(self) -> bool:
        return self.state() == "running"

    def boot(self, box: str | None = None) -> None:
        """`vagrant up` the machine (creates it from the base box on first use)."""
        env = os.environ.copy()
        if box:
            env["VMBUILD_BASE_BOX"] = box
        env["VMBUILD_GUEST_PATH"] = self.workdir
        try:
            proc = subprocess.run(["vagrant", "up", self.machine], cwd=self.vagrant_dir, env=env)
        except FileNotFoundError:
            raise EnvironmentUnavailable(environment=self.name, reason="vagrant not installed")
        if proc.returncode != 0:
            raise EnvironmentUnavailable(
                environment=self.name,
                reason=f"vagrant up failed (exit={proc.returncode})",
            )

    def _invoke(self, line: str) -> int:
        try:
            proc = self._vagrant("ssh", self.machine, "-c", line)
        except FileNotFoundError:
            raise EnvironmentUnavailable(environment=self.name, reason="vagrant not installed")
        # ssh itself exits 255 when the connection drops
        if proc.returncode == 255 and not self.is_available():
            raise EnvironmentUnavailable(environment=self.name, reason="lost during instruction")
        return proc.returncode
