from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from protolock_gate.errors import ArtifactNetworkError, ArtifactNotFound
from protolock_gate.resolver import LocalRepositoryResolver, RemoteRepositoryResolver
from protolock_gate.specs import parse_plugin_spec

SPEC = parse_plugin_spec("com.example:sample:1.0.0")


def fake_response(status: int, body: bytes = b"") -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.iter_content.return_value = [body]
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    return response


def test_local_repository_hit(tmp_path: Path):
    artifact = tmp_path / "com" / "example" / "sample" / "1.0.0" / "sample-1.0.0.exe"
    artifact.parent.mkdir(parents=True)
    artifact.write_bytes(b"x")
    assert LocalRepositoryResolver(tmp_path).resolve(SPEC) == artifact


def test_local_repository_miss(tmp_path: Path):
    with pytest.raises(ArtifactNotFound):
        LocalRepositoryResolver(tmp_path).resolve(SPEC)


def test_remote_download_is_cached(tmp_path: Path):
    session = MagicMock()
    session.get.return_value = fake_response(200, b"plugin")
    resolver = RemoteRepositoryResolver(
        ["https://repo.example.com/maven2/"], tmp_path, session=session
    )

    path = resolver.resolve(SPEC)
    assert path.read_bytes() == b"plugin"
    session.get.assert_called_once()
    url = session.get.call_args[0][0]
    assert url == "https://repo.example.com/maven2/com/example/sample/1.0.0/sample-1.0.0.exe"

    assert resolver.resolve(SPEC) == path
    assert session.get.call_count == 1


def test_remote_falls_through_repositories(tmp_path: Path):
    session = MagicMock()
    session.get.side_effect = [fake_response(404), fake_response(200, b"second")]
    resolver = RemoteRepositoryResolver(
        ["https://one.example.com", "https://two.example.com"], tmp_path, session=session
    )
    assert resolver.resolve(SPEC).read_bytes() == b"second"


def test_remote_not_found(tmp_path: Path):
    session = MagicMock()
    session.get.return_value = fake_response(404)
    resolver = RemoteRepositoryResolver(["https://repo.example.com"], tmp_path, session=session)
    with pytest.raises(ArtifactNotFound):
        resolver.resolve(SPEC)


def test_remote_server_error(tmp_path: Path):
    session = MagicMock()
    session.get.return_value = fake_response(503)
    resolver = RemoteRepositoryResolver(["https://repo.example.com"], tmp_path, session=session)
    with pytest.raises(ArtifactNetworkError):
        resolver.resolve(SPEC)


def test_remote_connection_error(tmp_path: Path):
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("refused")
    resolver = RemoteRepositoryResolver(["https://repo.example.com"], tmp_path, session=session)
    with pytest.raises(ArtifactNetworkError) as excinfo:
        resolver.resolve(SPEC)
    assert "refused" in str(excinfo.value)
