"""Plugin specifier parsing.

A plugin is declared either as a Maven-style coordinate
``group:artifact:version[:type[:classifier]]`` that must be fetched, or as a
bare executable name expected to be on ``PATH`` already.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from .errors import PluginResolutionError

DEFAULT_PLUGIN_TYPE = "exe"


@dataclass(frozen=True)
class Coordinate:
    group: str
    artifact: str
    version: str
    type: str = DEFAULT_PLUGIN_TYPE
    classifier: Optional[str] = None
    spec: str = ""

    @property
    def file_name(self) -> str:
        """File name of the artifact in a Maven repository layout."""
        name = f"{self.artifact}-{self.version}"
        if self.classifier:
            name += f"-{self.classifier}"
        return f"{name}.{self.type}"

    @property
    def repository_path(self) -> str:
        """Relative path of the artifact inside a Maven repository."""
        return "/".join(
            self.group.split(".") + [self.artifact, self.version, self.file_name]
        )

    def __str__(self) -> str:
        return self.spec or ":".join(
            part
            for part in (
                self.group,
                self.artifact,
                self.version,
                self.type,
                self.classifier,
            )
            if part
        )


@dataclass(frozen=True)
class LiteralName:
    name: str

    def __str__(self) -> str:
        return self.name


PluginSpec = Union[Coordinate, LiteralName]


def parse_plugin_spec(spec: str) -> PluginSpec:
    """Parse one plugin specifier.

    Raises:
        PluginResolutionError: for blank specs and malformed coordinates
    """
    text = (spec or "").strip()
    if not text:
        raise PluginResolutionError(spec, "plugin spec is empty")
    if ":" not in text:
        return LiteralName(text)

    parts = text.split(":")
    if not 3 <= len(parts) <= 5:
        raise PluginResolutionError(
            text,
            "expected group:artifact:version[:type[:classifier]] "
            f"but found {len(parts)} segments",
        )
    if any(not part.strip() for part in parts):
        raise PluginResolutionError(text, "coordinate segments must not be empty")

    parts = [part.strip() for part in parts]
    group, artifact, version = parts[:3]
    plugin_type = parts[3] if len(parts) > 3 else DEFAULT_PLUGIN_TYPE
    classifier = parts[4] if len(parts) > 4 else None
    return Coordinate(
        group=group,
        artifact=artifact,
        version=version,
        type=plugin_type,
        classifier=classifier,
        spec=text,
    )
