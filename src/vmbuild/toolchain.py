# toolchain.py
from __future__ import annotations

import shlex

from . import settings
from .environment import Environment
from .errors import InstallScriptFailed, NetworkFetchFailed
from .model import Privilege
from .runner import run_instruction
from .ui.console import get_console


class ToolchainInstaller:
    """Materializes a toolchain inside an environment. Must be safe to run twice."""

    def install(self, environment: Environment) -> None:
        raise NotImplementedError


class NoopInstaller(ToolchainInstaller):
    """Installs nothing; stands in when the toolchain is provided some other way."""

    def install(self, environment: Environment) -> None:
        get_console().print_debug("toolchain install skipped (noop installer)")


class ScriptInstaller(ToolchainInstaller):
    """
    Fetch an installer script over the network and run it non-interactively.

    Defaults match rustup: `curl -sSf https://sh.rustup.rs | sh -s -- -y`,
    split in two so a fetch failure can be told apart from an installer
    failure. The installer itself is expected to detect an existing install
    and skip or upgrade.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        args: str = "-y",
        tool: str = "cargo",
        env_file: str = "$HOME/.cargo/env",
        script_path: str = "/tmp/vmbuild-toolchain-installer.sh",
        privilege: Privilege = Privilege.UNPRIVILEGED,
    ):
        self.url = url or settings.INSTALLER_URL
        self.args = args
        self.tool = tool
        self.env_file = env_file
        self.script_path = script_path
        self.privilege = privilege

    def is_installed(self, environment: Environment) -> bool:
        # a fresh install isn't on PATH until its env file is sourced
        return environment.has_tool(self.tool, env_file=self.env_file, privilege=self.privilege)

    def install(self, environment: Environment) -> None:
        console = get_console()

        if self.is_installed(environment):
            console.print_info(f"{self.tool} already present in {environment.name}; re-running installer to update")

        script = shlex.quote(self.script_path)
        fetch = f"curl -sSf {shlex.quote(self.url)} -o {script}"
        code = run_instruction(environment, fetch, self.privilege, cwd="/")
        if code != 0:
            raise NetworkFetchFailed(url=self.url, exit_code=code)

        run = f"sh {script} {self.args}".strip()
        code = run_instruction(environment, run, self.privilege, cwd="/")
        if code != 0:
            raise InstallScriptFailed(url=self.url, exit_code=code)

        if not self.is_installed(environment):
            raise InstallScriptFailed(
                url=self.url,
                exit_code=0,
                message=f"{self.tool} not found after install",
            )


def installer_from_step_data(
    data: dict | None,
    privilege: Privilege = Privilege.UNPRIVILEGED,
) -> ToolchainInstaller:
    """Build the installer a "toolchain" step describes."""
    data = data or {}
    if data.get("noop"):
        return NoopInstaller()
    return ScriptInstaller(
        url=data.get("url"),
        args=data.get("args", "-y"),
        tool=data.get("tool", "cargo"),
        env_file=data.get("env_file", "$HOME/.cargo/env"),
        privilege=privilege,
    )
