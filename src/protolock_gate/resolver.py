"""Artifact resolution for coordinate-form plugins.

The gate only needs ``resolve(coordinate) -> local file``. Two resolvers are
provided: one that reads a local Maven-layout repository (offline builds) and
one that downloads from remote repositories into that local repository.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, runtime_checkable

import requests

from .errors import ArtifactNetworkError, ArtifactNotFound
from .specs import Coordinate

logger = logging.getLogger(__name__)

MAVEN_CENTRAL = "https://repo1.maven.org/maven2"
DEFAULT_LOCAL_REPOSITORY = Path.home() / ".m2" / "repository"


@runtime_checkable
class ArtifactResolver(Protocol):
    def resolve(self, coordinate: Coordinate) -> Path: ...


class LocalRepositoryResolver:
    """Resolve artifacts that are already present in a local repository."""

    def __init__(self, root: Optional[Path] = None) -> None:
        self.root = Path(root) if root else DEFAULT_LOCAL_REPOSITORY

    def path_for(self, coordinate: Coordinate) -> Path:
        return self.root.joinpath(*coordinate.repository_path.split("/"))

    def resolve(self, coordinate: Coordinate) -> Path:
        path = self.path_for(coordinate)
        if not path.is_file():
            raise ArtifactNotFound(
                f"{coordinate} not found in local repository {self.root}"
            )
        return path


class RemoteRepositoryResolver:
    """Download artifacts from remote repositories, caching them locally."""

    def __init__(
        self,
        repositories: Optional[Sequence[str]] = None,
        local_repository: Optional[Path] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ) -> None:
        self.repositories: List[str] = [
            url.rstrip("/") for url in (repositories or [MAVEN_CENTRAL])
        ]
        self.local = LocalRepositoryResolver(local_repository)
        self.session = session or requests.Session()
        self.timeout = timeout

    def resolve(self, coordinate: Coordinate) -> Path:
        """Return the cached artifact, downloading it first if needed.

        Raises:
            ArtifactNotFound: if no repository has the artifact
            ArtifactNetworkError: if a repository could not be reached
        """
        cached = self.local.path_for(coordinate)
        if cached.is_file():
            logger.debug(f"Using cached {coordinate} from {cached}")
            return cached

        for base in self.repositories:
            url = f"{base}/{coordinate.repository_path}"
            logger.info(f"Downloading {coordinate} from {url}")
            try:
                response = self.session.get(url, stream=True, timeout=self.timeout)
            except requests.RequestException as e:
                raise ArtifactNetworkError(
                    f"Could not reach {base} while resolving {coordinate}: {e}"
                ) from e

            with response:
                if response.status_code == 404:
                    logger.debug(f"{coordinate} not present in {base}")
                    continue
                if response.status_code >= 400:
                    raise ArtifactNetworkError(
                        f"{base} answered HTTP {response.status_code} for {coordinate}"
                    )
                self._store(response, cached)
            return cached

        raise ArtifactNotFound(
            f"{coordinate} not found in any repository: {', '.join(self.repositories)}"
        )

    def _store(self, response: requests.Response, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + ".part")
        try:
            with open(partial, "wb") as f:
                for chunk in response.iter_content(chunk_size=64 * 1024):
                    if chunk:
                        f.write(chunk)
            os.replace(partial, target)
        except requests.RequestException as e:
            partial.unlink(missing_ok=True)
            raise ArtifactNetworkError(f"Download of {target.name} failed: {e}") from e
