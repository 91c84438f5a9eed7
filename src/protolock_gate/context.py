"""Directory-scoped workspace shared by provisioning and plugin resolution."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

TOOL_NAME = "protolock"
LOCK_FILE_NAME = "proto.lock"


@dataclass(frozen=True)
class WorkspaceContext:
    """Locations owned by one build output directory.

    The binary and plugin directories are shared between invocations that use
    the same output directory; every write into them is guarded by an
    existence check.
    """

    output_dir: Path
    plugin_dir_override: Optional[Path] = None

    @property
    def binary_dir(self) -> Path:
        return self.output_dir / f"{TOOL_NAME}-bin"

    @property
    def plugin_dir(self) -> Path:
        if self.plugin_dir_override is not None:
            return self.plugin_dir_override
        return self.output_dir / f"{TOOL_NAME}-plugins"

    @classmethod
    def for_output_dir(
        cls, output_dir: Path, plugin_dir: Optional[Path] = None
    ) -> "WorkspaceContext":
        return cls(
            output_dir=Path(output_dir),
            plugin_dir_override=Path(plugin_dir) if plugin_dir else None,
        )


def lock_file_path(lock_dir: Path) -> Path:
    return Path(lock_dir) / LOCK_FILE_NAME
