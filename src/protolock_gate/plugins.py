"""Resolution of protolock plugins into a local plugin directory.

protolock discovers plugins by name on ``PATH``. Coordinate-form plugins are
fetched through an :class:`~protolock_gate.resolver.ArtifactResolver`, copied
into the workspace plugin directory and that directory is appended to the
``PATH`` handed to protolock. Literal names are passed through untouched.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .classifier import PlatformClassifier
from .errors import ArtifactResolutionError, PluginResolutionError
from .provisioning import is_runnable, make_executable
from .resolver import ArtifactResolver
from .specs import Coordinate, LiteralName, PluginSpec, parse_plugin_spec

logger = logging.getLogger(__name__)


@dataclass
class ResolvedPlugins:
    """Outcome of plugin resolution."""

    names: List[str] = field(default_factory=list)
    path: Optional[str] = None

    @property
    def plugins_flag(self) -> Optional[str]:
        if not self.names:
            return None
        return "--plugins=" + ",".join(self.names)


class PluginResolver:
    """Turns plugin specs into executables protolock can find."""

    def __init__(
        self,
        resolver: ArtifactResolver,
        classifier: PlatformClassifier,
        inherited_path: Optional[str] = None,
    ) -> None:
        self.resolver = resolver
        self.classifier = classifier
        self.inherited_path = (
            inherited_path if inherited_path is not None else os.environ.get("PATH", "")
        )

    def resolve_plugins(
        self, specs: Sequence[Union[str, PluginSpec]], plugin_dir: Path
    ) -> ResolvedPlugins:
        """Resolve ``specs`` in order.

        Raises:
            PluginResolutionError: on the first spec that cannot be parsed,
                resolved or copied; nothing resolved so far is returned
        """
        parsed = [
            spec if isinstance(spec, (Coordinate, LiteralName)) else parse_plugin_spec(spec)
            for spec in specs
        ]
        if not parsed:
            return ResolvedPlugins()

        names: List[str] = []
        for spec in parsed:
            if isinstance(spec, LiteralName):
                logger.debug(f"Plugin {spec.name} expected on PATH")
                names.append(spec.name)
            else:
                names.append(self._install(spec, Path(plugin_dir)))

        path = self.augment_path(Path(plugin_dir))
        logger.info(f"Resolved protolock plugins: {', '.join(names)}")
        return ResolvedPlugins(names=names, path=path)

    def augment_path(self, plugin_dir: Path) -> str:
        if not self.inherited_path:
            return str(plugin_dir)
        return f"{self.inherited_path}{self.classifier.path_separator}{plugin_dir}"

    def _install(self, coordinate: Coordinate, plugin_dir: Path) -> str:
        try:
            source = Path(self.resolver.resolve(coordinate))
        except (ArtifactResolutionError, OSError) as e:
            raise PluginResolutionError(str(coordinate), str(e)) from e

        name = self.classifier.executable_name(source.name)
        destination = plugin_dir / name
        if destination.exists():
            try:
                if not is_runnable(destination):
                    make_executable(destination)
            except OSError as e:
                raise PluginResolutionError(
                    str(coordinate), f"could not mark {destination} as executable: {e}"
                ) from e
            logger.debug(f"Plugin {name} already present in {plugin_dir}")
            return name

        partial = destination.with_name(destination.name + ".part")
        try:
            plugin_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, partial)
            make_executable(partial)
            os.replace(partial, destination)
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise PluginResolutionError(
                str(coordinate), f"could not copy {source} to {destination}: {e}"
            ) from e

        logger.info(f"Installed plugin {coordinate} as {destination}")
        return name


def resolve_plugins(
    specs: Sequence[Union[str, PluginSpec]],
    plugin_dir: Path,
    resolver: ArtifactResolver,
    classifier: PlatformClassifier,
) -> ResolvedPlugins:
    return PluginResolver(resolver, classifier).resolve_plugins(specs, plugin_dir)
