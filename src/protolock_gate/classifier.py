"""Platform classifier handling.

A classifier is an ``<os>-<arch>`` string such as ``linux-x86_64`` or
``windows-x86_64``. It selects the bundled protolock binary and decides
whether executables need a ``.exe`` suffix.
"""

from __future__ import annotations

import platform
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigurationError

_OS_NAMES = {
    "linux": "linux",
    "darwin": "osx",
    "windows": "windows",
    "freebsd": "freebsd",
}

_ARCH_NAMES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
    "i386": "x86_32",
    "i686": "x86_32",
    "x86": "x86_32",
    "arm64": "aarch_64",
    "aarch64": "aarch_64",
    "ppc64le": "ppcle_64",
    "s390x": "s390_64",
}


@dataclass(frozen=True)
class PlatformClassifier:
    """OS+arch identifier for the current build."""

    value: str

    @property
    def is_windows(self) -> bool:
        return self.value.startswith("windows")

    @property
    def exe_suffix(self) -> str:
        return ".exe" if self.is_windows else ""

    @property
    def path_separator(self) -> str:
        return ";" if self.is_windows else ":"

    def executable_name(self, name: str) -> str:
        """Append the executable suffix to ``name`` unless it already has it."""
        suffix = self.exe_suffix
        if suffix and not name.lower().endswith(suffix):
            return name + suffix
        return name

    def __str__(self) -> str:
        return self.value


def resolve_platform(classifier: Optional[str]) -> PlatformClassifier:
    """Validate a configuration-supplied classifier.

    Raises:
        ConfigurationError: if the classifier is missing or blank
    """
    if classifier is None or not str(classifier).strip():
        raise ConfigurationError(
            "Unable to determine the platform classifier. Set 'classifier' in "
            "protolock-gate.yaml, export PROTOLOCK_GATE_CLASSIFIER, or pass "
            "--classifier (for example linux-x86_64)."
        )
    return PlatformClassifier(str(classifier).strip())


def detect_classifier() -> Optional[str]:
    """Detect the classifier of the running interpreter's platform.

    Uses the same naming as os-maven-plugin. Returns None when the OS or
    architecture is not recognized.
    """
    system = platform.system().lower()
    os_name = None
    for prefix, name in _OS_NAMES.items():
        if system.startswith(prefix):
            os_name = name
            break
    if system.startswith(("cygwin", "mingw", "msys")):
        os_name = "windows"

    arch = _ARCH_NAMES.get(platform.machine().lower())
    if not os_name or not arch:
        return None
    return f"{os_name}-{arch}"
