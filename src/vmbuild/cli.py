# cli.py
from __future__ import annotations

import sys
from pathlib import Path
from typing import List

import click
from click.core import ParameterSource

from . import settings
from .build import BuildTestStage
from .dsl import build_test, default_pipeline, pl, toolchain
from .environment import Environment, LocalEnvironment, VagrantEnvironment
from .errors import EnvironmentUnavailable, VMBuildError
from .model import Step
from .pipeline import ProvisioningPipeline
from .runner import load_pipeline
from .ui.console import Console, get_console, set_console

DEFAULT_PIPELINE_FILE = "vmbuild_pipeline.py"


def find_pipeline_files() -> list[Path]:
    """
    Find all pipeline files in the current directory.

    Returns:
        List of Path objects for pipeline files
    """
    pipeline_files = []
    current_dir = Path(".")

    default_file = current_dir / DEFAULT_PIPELINE_FILE
    if default_file.exists():
        pipeline_files.append(default_file)

    for path in current_dir.glob("*_pipeline.py"):
        if path != default_file:
            pipeline_files.append(path)

    return sorted(pipeline_files)


def discover_pipeline(pipeline_arg: str | None) -> Path | None:
    """
    Discover pipeline file from argument or default.

    Returns None when nothing was asked for and nothing was found, in which
    case the built-in default pipeline is used.

    Raises:
        SystemExit: If an explicit file is missing or several candidates exist
    """
    console = get_console()

    if pipeline_arg:
        pipeline_path = Path(pipeline_arg)
        if not pipeline_path.exists() and pipeline_path.suffix != ".py":
            pipeline_path = Path(str(pipeline_path) + ".py")
        if not pipeline_path.exists():
            console.print_error(
                "Pipeline file not found",
                f"Could not find pipeline file: {pipeline_arg}",
                suggestion="Create a pipeline file or specify a different path:\n  vmbuild run --pipeline my_pipeline.py",
            )
            sys.exit(1)
        return pipeline_path

    pipeline_files = find_pipeline_files()

    if len(pipeline_files) > 1:
        file_list = "\n".join(f"  {f}" for f in pipeline_files)
        console.print_error(
            "Multiple pipeline files found",
            "Found multiple pipeline files. Please specify which one to use:",
            details=[file_list],
            suggestion=f"Specify a pipeline explicitly:\n  vmbuild run --pipeline {DEFAULT_PIPELINE_FILE}",
        )
        sys.exit(1)

    return pipeline_files[0] if pipeline_files else None


def _make_environment(target: str, vagrant_dir: str, machine: str, guest_path: str | None) -> Environment:
    if target == "vagrant":
        return VagrantEnvironment(
            vagrant_dir=vagrant_dir,
            machine=machine,
            workdir=guest_path or settings.GUEST_PATH,
        )
    return LocalEnvironment(workdir=guest_path or str(Path.cwd()))


_TARGET_OPTIONS = [
    click.option(
        "--target",
        type=click.Choice(["vagrant", "local"]),
        default="vagrant",
        show_default=True,
        help="Run steps inside the Vagrant VM or on this host",
    ),
    click.option("--vagrant-dir", default=settings.VAGRANT_DIR, show_default=True, help="Directory holding the Vagrantfile"),
    click.option("--machine", default="default", show_default=True, help="Vagrant machine name"),
    click.option("--boot/--no-boot", default=False, help="Run `vagrant up` before the first step"),
    click.option("--box", default=settings.BASE_BOX, show_default=True, help="Base box used when booting a new VM"),
    click.option(
        "--guest-path",
        default=None,
        help=f"Project path inside the target (VM default: {settings.GUEST_PATH}, local default: cwd)",
    ),
]


def target_options(fn):
    """Options selecting where steps run."""
    for option in reversed(_TARGET_OPTIONS):
        fn = option(fn)
    return fn


def _reject_builtin_only_options(ctx, pipeline_path: Path | None, names: List[str]) -> None:
    """Options that shape the built-in pipeline mean nothing once a pipeline file is loaded."""
    if pipeline_path is None:
        return
    given = [n for n in names if ctx.get_parameter_source(n) is not ParameterSource.DEFAULT]
    if given:
        flags = ", ".join("--" + n.replace("_", "-") for n in given)
        raise click.UsageError(
            f"{flags} only apply to the built-in pipeline, but {pipeline_path} was loaded. "
            "Edit the pipeline file instead."
        )


def _prepare_environment(target, vagrant_dir, machine, boot, box, guest_path) -> Environment:
    environment = _make_environment(target, vagrant_dir, machine, guest_path)
    if boot and isinstance(environment, VagrantEnvironment):
        get_console().print_info(f"Booting {environment.name} ({box})...")
        environment.boot(box)
    return environment


def _execute(environment: Environment, steps: List[Step], pipeline_name: str, print_plan: bool) -> None:
    """Run steps, print the terminal report, exit with the pipeline's exit code."""
    console = get_console()
    pipeline = ProvisioningPipeline(steps)

    console.print_run_started(
        target=environment.name,
        pipeline=pipeline_name,
        step_count=len(pipeline.steps),
    )
    if print_plan:
        for i, s in enumerate(pipeline.steps):
            console.print_plan_step(i, s.name, s.privilege.value, s.kind)

    result = pipeline.execute(environment)
    console.print_results(result)
    sys.exit(result.exit_code())


def _handle_exception(e: Exception) -> None:
    console = get_console()
    if isinstance(e, EnvironmentUnavailable):
        console.print_error(
            "Environment unavailable",
            str(e),
            suggestion="Start the VM first (vagrant up) or pass --boot.",
        )
        sys.exit(3)
    console.print_exception(e)
    sys.exit(1)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and every executed command)",
)
@click.pass_context
def cli(ctx, debug):
    """vmbuild: provision a VM, install a toolchain, build and test a checkout."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.option(
    "--pipeline",
    "pipeline_arg",
    default=None,
    help=f"Pipeline file path (defaults to {DEFAULT_PIPELINE_FILE} if present, else the built-in pipeline)",
)
@target_options
@click.option("--installer-url", default=settings.INSTALLER_URL, show_default=True, help="Toolchain installer script URL")
@click.option("--skip-toolchain", is_flag=True, default=False, help="Built-in pipeline: don't run the toolchain installer")
@click.option("--install-example", is_flag=True, default=False, help="Built-in pipeline: install the example library after testing")
@click.option("--print-plan/--no-print-plan", default=True, show_default=True, help="Print steps before running")
@click.pass_context
def run(ctx, pipeline_arg, target, vagrant_dir, machine, boot, box, guest_path,
        installer_url, skip_toolchain, install_example, print_plan):
    """Run the provisioning pipeline."""
    pipeline_path = discover_pipeline(pipeline_arg)
    _reject_builtin_only_options(ctx, pipeline_path, ["installer_url", "skip_toolchain", "install_example"])

    try:
        environment = _prepare_environment(target, vagrant_dir, machine, boot, box, guest_path)

        if pipeline_path is not None:
            steps = load_pipeline(pipeline_path)
            pipeline_name = pipeline_path.name
        else:
            steps = default_pipeline(
                project_path=environment.workdir,
                installer_url=installer_url,
                skip_toolchain=skip_toolchain,
                with_example_install=install_example,
            )
            pipeline_name = "(built-in)"

        _execute(environment, steps, pipeline_name, print_plan)

    except KeyboardInterrupt:
        get_console().print_info("\nInterrupted by user")
        sys.exit(130)
    except (VMBuildError, FileNotFoundError, TypeError, ValueError) as e:
        _handle_exception(e)


@cli.command()
@click.option("--pipeline", "pipeline_arg", default=None, help="Pipeline file path")
@click.option("--guest-path", default=settings.GUEST_PATH, show_default=True, help="Project path inside the target")
@click.option("--install-example", is_flag=True, default=False, help="Built-in pipeline: include the example install")
@click.pass_context
def plan(ctx, pipeline_arg, guest_path, install_example):
    """Print the ordered steps without running anything."""
    console = get_console()
    pipeline_path = discover_pipeline(pipeline_arg)
    _reject_builtin_only_options(ctx, pipeline_path, ["install_example"])

    try:
        if pipeline_path is not None:
            steps = load_pipeline(pipeline_path)
            name = pipeline_path.name
        else:
            steps = default_pipeline(project_path=guest_path, with_example_install=install_example)
            name = "(built-in)"
        steps = ProvisioningPipeline(steps).steps
    except (FileNotFoundError, TypeError, ValueError) as e:
        _handle_exception(e)

    console.print_header(f"PLAN: {name}")
    for i, s in enumerate(steps):
        console.print_plan_step(i, s.name, s.privilege.value, s.kind)


@cli.command()
@click.option("--project-path", default=".", show_default=True, help="Project checkout to build and test")
@click.pass_context
def build(ctx, project_path):
    """Build, build examples and test a checkout on this host."""
    console = get_console()
    path = Path(project_path).resolve()
    environment = LocalEnvironment(workdir=str(path))

    try:
        BuildTestStage().run(environment, str(path))
    except VMBuildError as e:
        console.print_failure("build-and-test", str(e), exit_code=getattr(e, "exit_code", None))
        sys.exit(1)

    console.print_info("Build and tests passed")


@cli.command("install-toolchain")
@target_options
@click.option("--installer-url", default=settings.INSTALLER_URL, show_default=True, help="Toolchain installer script URL")
@click.option("--and-build", is_flag=True, default=False, help="Build and test the project after installing")
@click.pass_context
def install_toolchain(ctx, target, vagrant_dir, machine, boot, box, guest_path, installer_url, and_build):
    """Install the toolchain (safe to repeat), optionally followed by build and test."""
    try:
        environment = _prepare_environment(target, vagrant_dir, machine, boot, box, guest_path)
        steps = [toolchain(url=installer_url)]
        if and_build:
            steps.append(build_test(project_path=environment.workdir))
        _execute(environment, pl(*steps), "install-toolchain", print_plan=False)
    except KeyboardInterrupt:
        get_console().print_info("\nInterrupted by user")
        sys.exit(130)
    except VMBuildError as e:
        _handle_exception(e)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
