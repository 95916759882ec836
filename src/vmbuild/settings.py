from __future__ import annotations
import os

INSTALLER_URL = os.environ.get("VMBUILD_INSTALLER_URL", "https://sh.rustup.rs")
GUEST_PATH = os.environ.get("VMBUILD_GUEST_PATH", "/project")
BASE_BOX = os.environ.get("VMBUILD_BASE_BOX", "ubuntu/jammy64")
VAGRANT_DIR = os.environ.get("VMBUILD_VAGRANT_DIR", ".")
SYSTEM_PACKAGES = os.environ.get(
    "VMBUILD_SYSTEM_PACKAGES", "build-essential curl ca-certificates"
).split()
