from __future__ import annotations

import pytest

from vmbuild.errors import InstallScriptFailed, NetworkFetchFailed
from vmbuild.model import Privilege
from vmbuild.toolchain import NoopInstaller, ScriptInstaller, installer_from_step_data

from conftest import FakeEnvironment

URL = "https://sh.rustup.rs"


def test_install_fetches_then_runs_non_interactively(fake_env):
    ScriptInstaller(URL).install(fake_env)

    fetch = [i for i in fake_env.instructions if i.startswith("curl")]
    run = [i for i in fake_env.instructions if i.startswith("sh ")]
    assert fetch == [f"curl -sSf {URL} -o /tmp/vmbuild-toolchain-installer.sh"]
    assert run == ["sh /tmp/vmbuild-toolchain-installer.sh -y"]
    assert fake_env.instructions.index(fetch[0]) < fake_env.instructions.index(run[0])
    assert "cargo" in fake_env.tools


def test_install_twice_does_not_fail(fake_env):
    installer = ScriptInstaller(URL)
    installer.install(fake_env)
    installer.install(fake_env)

    assert "cargo" in fake_env.tools
    assert len([i for i in fake_env.instructions if i.startswith("sh ")]) == 2


def test_presence_is_probed_on_every_run(fake_env):
    installer = ScriptInstaller(URL)
    installer.install(fake_env)
    probes_first = len([i for i in fake_env.instructions if "command -v cargo" in i])
    installer.install(fake_env)
    probes_total = len([i for i in fake_env.instructions if "command -v cargo" in i])

    assert probes_first == 2
    assert probes_total == 4


def test_unreachable_installer_is_a_fetch_failure():
    env = FakeEnvironment(rules=[("curl", 6)])

    with pytest.raises(NetworkFetchFailed) as exc:
        ScriptInstaller(URL).install(env)

    assert exc.value.exit_code == 6
    assert not any(i.startswith("sh ") for i in env.instructions)


def test_installer_exit_is_a_script_failure():
    env = FakeEnvironment(rules=[("sh /tmp", 1)])

    with pytest.raises(InstallScriptFailed) as exc:
        ScriptInstaller(URL).install(env)

    assert exc.value.exit_code == 1


def test_tool_missing_after_install_is_a_script_failure():
    env = FakeEnvironment(installs_tool="something-else")

    with pytest.raises(InstallScriptFailed, match="not found after install"):
        ScriptInstaller(URL).install(env)


def test_noop_installer_touches_nothing(fake_env):
    NoopInstaller().install(fake_env)
    assert fake_env.calls == []


def test_installer_from_step_data():
    installer = installer_from_step_data(
        {"url": "https://example.invalid/i.sh", "args": "-y --profile minimal", "tool": "rustc"},
        privilege=Privilege.ELEVATED,
    )
    assert isinstance(installer, ScriptInstaller)
    assert installer.url == "https://example.invalid/i.sh"
    assert installer.args == "-y --profile minimal"
    assert installer.tool == "rustc"
    assert installer.privilege is Privilege.ELEVATED

    assert isinstance(installer_from_step_data({"noop": True}), NoopInstaller)
