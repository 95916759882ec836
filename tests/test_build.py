from __future__ import annotations

import pytest

from vmbuild.build import BuildTestStage, stage_from_step_data
from vmbuild.environment import LocalEnvironment
from vmbuild.errors import BuildError

from conftest import FakeEnvironment


def _cargo_calls(env):
    return [c for c in env.calls if "cargo" in c[0]]


def test_substeps_run_in_order_in_project_path(fake_env):
    BuildTestStage().run(fake_env, "/nsswitch_service")

    calls = _cargo_calls(fake_env)
    assert [c[0].rsplit("; ", 1)[-1] for c in calls] == [
        "cargo build",
        "cargo build --examples",
        "cargo test",
    ]
    assert {c[2] for c in calls} == {"/nsswitch_service"}


def test_failing_tests_are_attributed_to_test_substep():
    env = FakeEnvironment(rules=[("cargo test", 101)])

    with pytest.raises(BuildError) as exc:
        BuildTestStage().run(env, "/p")

    assert exc.value.substep == "test"
    assert exc.value.exit_code == 101
    assert len(env.applied) == 2


def test_failing_build_skips_examples_and_tests():
    env = FakeEnvironment(rules=[("cargo build", 1)])

    with pytest.raises(BuildError) as exc:
        BuildTestStage().run(env, "/p")

    assert exc.value.substep == "build"
    assert len(_cargo_calls(env)) == 1


def test_toolchain_env_file_is_sourced_before_each_command(fake_env):
    BuildTestStage().run(fake_env, "/p")
    assert all(c[0].startswith('if [ -f "$HOME/.cargo/env" ]') for c in fake_env.calls)

    plain = FakeEnvironment()
    BuildTestStage(env_file=None).run(plain, "/p")
    assert plain.instructions[0] == "cargo build"


def test_empty_substeps_rejected():
    with pytest.raises(ValueError):
        BuildTestStage([])


def test_stage_from_step_data_uses_custom_substeps(fake_env):
    stage = stage_from_step_data({"substeps": [["compile", "make"], ["check", "make check"]], "env_file": None})
    stage.run(fake_env, "/p")
    assert fake_env.instructions == ["make", "make check"]


def test_local_project_missing_test_suite(tmp_path):
    """Builds succeed, the test command fails: the stage blames `test`."""
    (tmp_path / "artifact").mkdir()
    stage = BuildTestStage(
        [
            ("build", "touch artifact/main"),
            ("build-examples", "touch artifact/example"),
            ("test", "test -d tests"),
        ],
        env_file=None,
    )

    with pytest.raises(BuildError) as exc:
        stage.run(LocalEnvironment(str(tmp_path)), str(tmp_path))

    assert exc.value.substep == "test"
    assert (tmp_path / "artifact" / "main").exists()
    assert (tmp_path / "artifact" / "example").exists()


def test_missing_project_path_fails_the_build_substep(tmp_path, monkeypatch):
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    monkeypatch.chdir(elsewhere)
    stage = BuildTestStage(
        [("build", "pwd > built"), ("build-examples", "true"), ("test", "true")],
        env_file="$HOME/.cargo/env",
    )

    with pytest.raises(BuildError) as exc:
        stage.run(LocalEnvironment(str(tmp_path)), str(tmp_path / "no-such-checkout"))

    assert exc.value.substep == "build"
    assert not (elsewhere / "built").exists()
