# src/vmbuild/dsl.py
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from . import settings
from .build import DEFAULT_SUBSTEPS
from .model import Privilege, Step


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

def sh(name: str, *cmds: str, cwd: str | None = None, privilege: Privilege = Privilege.UNPRIVILEGED) -> Step:
    """Create a shell step run as the login user."""
    if not cmds:
        raise ValueError(f"sh({name!r}) must have at least one command")
    return Step(name=name, run=tuple(cmds), cwd=cwd, privilege=privilege)


def sudo(name: str, *cmds: str, cwd: str | None = None) -> Step:
    """Create a shell step run as root."""
    return sh(name, *cmds, cwd=cwd, privilege=Privilege.ELEVATED)


def apt_install(name: str, packages: Iterable[str]) -> Step:
    """Elevated, non-interactive apt install. apt-get is a no-op for packages already present."""
    pkgs = " ".join(packages)
    return sudo(
        name,
        "apt-get update -qq",
        f"DEBIAN_FRONTEND=noninteractive apt-get install -y -qq {pkgs}",
    )


def toolchain(
    name: str = "install-toolchain",
    *,
    url: str | None = None,
    args: str = "-y",
    tool: str = "cargo",
    noop: bool = False,
) -> Step:
    """Fetch-and-run installer step (rustup by default)."""
    return Step(
        name=name,
        kind="toolchain",
        data={"url": url or settings.INSTALLER_URL, "args": args, "tool": tool, "noop": noop},
    )


def build_test(
    name: str = "build-and-test",
    project_path: str | None = None,
    *,
    substeps: Optional[Sequence[Tuple[str, str]]] = None,
) -> Step:
    """Build main artifact, build examples, run tests, in `project_path`."""
    return Step(
        name=name,
        cwd=project_path or settings.GUEST_PATH,
        kind="build-test",
        data={"substeps": [list(s) for s in (substeps or DEFAULT_SUBSTEPS)]},
    )


# ---------------------------------------------------------------------
# Pipeline helpers (single-file story)
# ---------------------------------------------------------------------

def pl(*steps: Step) -> List[Step]:
    """
    Pipeline definition helper. Named `pl` so you can define your own
    def pipeline(): return pl(step(...), step(...)).

    Users can write, in vmbuild_pipeline.py:
        from vmbuild.dsl import pl, sudo, sh, toolchain, build_test

        def pipeline():
            return pl(
                sudo("packages", "apt-get install -y curl"),
                toolchain(),
                build_test(project_path="/project"),
            )

    Or use STEPS directly:
        STEPS = pl(sudo(...), build_test(...))
    """
    return list(steps)


NSS_EXAMPLE_LIB = "target/debug/examples/libnss_loopback.so"
NSS_EXAMPLE_DEST = "/usr/lib/libnss_loopback.so.2"


def install_example(name: str = "install-example", project_path: str | None = None) -> Step:
    """Copy the built NSS example library into the system library path."""
    return sudo(
        name,
        f"install -m 0644 {NSS_EXAMPLE_LIB} {NSS_EXAMPLE_DEST}",
        "ldconfig",
        cwd=project_path or settings.GUEST_PATH,
    )


def default_pipeline(
    *,
    project_path: str | None = None,
    installer_url: str | None = None,
    packages: Optional[Sequence[str]] = None,
    skip_toolchain: bool = False,
    with_example_install: bool = False,
) -> List[Step]:
    """System packages, toolchain, build + test, and optionally the example install."""
    project_path = project_path or settings.GUEST_PATH
    steps = [
        apt_install("system-packages", packages or settings.SYSTEM_PACKAGES),
        toolchain(url=installer_url, noop=skip_toolchain),
        build_test(project_path=project_path),
    ]
    if with_example_install:
        steps.append(install_example(project_path=project_path))
    return pl(*steps)
