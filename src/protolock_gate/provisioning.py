"""Provisioning of the protolock executable for the current platform.

The gate ships protolock builds as package data under
``protolock_gate/binaries/<classifier>/protolock[.exe]``. On first use the
matching build is copied into ``<output_dir>/protolock-bin/`` and marked
executable; later calls find it there and do nothing.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
from dataclasses import dataclass
from importlib import resources as importlib_resources
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Union, runtime_checkable

from .classifier import PlatformClassifier, resolve_platform
from .context import TOOL_NAME, WorkspaceContext
from .errors import ProvisioningError, UnsupportedPlatform

logger = logging.getLogger(__name__)

EXECUTABLE_MODE = (
    stat.S_IRWXU | stat.S_IRWXG | stat.S_IROTH | stat.S_IXOTH
)  # rwxrwxr-x


@runtime_checkable
class ResourceStore(Protocol):
    """Source of embedded binaries keyed by ``<classifier>/<file name>``."""

    def exists(self, key: str) -> bool: ...

    def open(self, key: str) -> BinaryIO: ...


class PackageResourceStore:
    """Binaries bundled inside an importable package."""

    def __init__(self, package: str = "protolock_gate.binaries") -> None:
        self.package = package

    def _traversable(self, key: str):
        node = importlib_resources.files(self.package)
        for part in key.split("/"):
            node = node.joinpath(part)
        return node

    def exists(self, key: str) -> bool:
        try:
            return self._traversable(key).is_file()
        except (ModuleNotFoundError, FileNotFoundError):
            return False

    def open(self, key: str) -> BinaryIO:
        return self._traversable(key).open("rb")


class DirectoryResourceStore:
    """Binaries laid out as ``<root>/<classifier>/<file name>`` on disk."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def exists(self, key: str) -> bool:
        return (self.root / key).is_file()

    def open(self, key: str) -> BinaryIO:
        return open(self.root / key, "rb")


@dataclass(frozen=True)
class BinaryHandle:
    """A provisioned, runnable protolock executable."""

    path: Path
    classifier: PlatformClassifier

    def __str__(self) -> str:
        return str(self.path)


def make_executable(path: Path) -> None:
    """Mark ``path`` as executable using the best mechanism the platform offers."""
    if os.name == "nt":
        # Windows only honours the read-only bit; executability comes from the suffix.
        os.chmod(path, stat.S_IREAD | stat.S_IWRITE)
        return
    os.chmod(path, EXECUTABLE_MODE)


def is_runnable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.R_OK | os.X_OK)


class BinaryProvisioner:
    """Copies the bundled protolock build into a workspace, once."""

    def __init__(self, resources: Optional[ResourceStore] = None) -> None:
        self.resources = resources or PackageResourceStore()

    def target_path(
        self, classifier: PlatformClassifier, context: WorkspaceContext
    ) -> Path:
        return context.binary_dir / classifier.executable_name(TOOL_NAME)

    def ensure_binary(
        self, classifier: PlatformClassifier, context: WorkspaceContext
    ) -> BinaryHandle:
        """Make sure the protolock executable exists in ``context``.

        Args:
            classifier: Platform the binary must match
            context: Workspace whose ``protolock-bin`` directory receives it

        Returns:
            BinaryHandle pointing at a runnable executable

        Raises:
            UnsupportedPlatform: if no bundled binary matches the classifier
            ProvisioningError: if the copy fails
        """
        target = self.target_path(classifier, context)
        if target.exists():
            try:
                if not is_runnable(target):
                    make_executable(target)
            except OSError as e:
                raise ProvisioningError(
                    f"Failed to mark {target} as executable: {e}"
                ) from e
            logger.debug(f"protolock already provisioned at {target}")
            return BinaryHandle(path=target, classifier=classifier)

        key = f"{classifier.value}/{classifier.executable_name(TOOL_NAME)}"
        if not self.resources.exists(key):
            raise UnsupportedPlatform(classifier.value, key)

        partial = target.with_name(target.name + ".part")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with self.resources.open(key) as src, open(partial, "wb") as dst:
                shutil.copyfileobj(src, dst)
            make_executable(partial)
            os.replace(partial, target)
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise ProvisioningError(
                f"Failed to provision protolock into {target}: {e}"
            ) from e

        logger.info(f"Provisioned protolock for {classifier} at {target}")
        return BinaryHandle(path=target, classifier=classifier)


def ensure_binary(
    classifier: Union[str, PlatformClassifier],
    output_dir: Union[str, Path],
    resources: Optional[ResourceStore] = None,
) -> BinaryHandle:
    """Convenience wrapper around :class:`BinaryProvisioner`."""
    if not isinstance(classifier, PlatformClassifier):
        classifier = resolve_platform(classifier)
    context = WorkspaceContext.for_output_dir(Path(output_dir))
    return BinaryProvisioner(resources).ensure_binary(classifier, context)
