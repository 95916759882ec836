# vmbuild_pipeline.py
# Pipeline for the nsswitch_service checkout: packages, rustup, build + test,
# then install the loopback example so it can be tried with `getent hosts`.
# The checkout is mounted at VMBUILD_GUEST_PATH (see Vagrantfile).
from __future__ import annotations

from vmbuild.dsl import pl, apt_install, toolchain, build_test, install_example


def pipeline():
    return pl(
        # Elevated: compiler + curl for the installer
        apt_install("system-packages", ["build-essential", "curl", "ca-certificates"]),

        # Unprivileged: rustup into the vagrant user's home
        toolchain("install-rust", url="https://sh.rustup.rs"),

        # cargo build, cargo build --examples, cargo test
        build_test("build-and-test"),

        install_example("install-nss-loopback"),
    )
