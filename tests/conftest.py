"""
Shared fixtures for the protolock-gate test suite.

Provides:
- a fake protolock build laid out as a binary resource directory
- a throwaway project with a proto source root and build output directory
- a scripted process runner for state machine tests
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

from protolock_gate.config import GateConfig
from protolock_gate.process import CommandResult

FIXTURES = Path(__file__).parent / "fixtures"
CLASSIFIER = "windows-x86_64" if sys.platform == "win32" else "linux-x86_64"


def write_script(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")
    path.chmod(0o755)
    return path


@pytest.fixture
def classifier() -> str:
    return CLASSIFIER


@pytest.fixture
def binary_resources(tmp_path: Path) -> Path:
    """Resource directory holding the fake protolock for CLASSIFIER."""
    root = tmp_path / "resources"
    source = (FIXTURES / "fake_protolock.py").read_text(encoding="utf-8")
    write_script(root / CLASSIFIER / "protolock", f"#!{sys.executable}\n{source}")
    return root


@dataclass
class Project:
    root: Path
    proto_root: Path
    output_dir: Path

    @property
    def lock_file(self) -> Path:
        return self.proto_root / "proto.lock"

    @property
    def invocations_log(self) -> Path:
        return self.output_dir / "protolock-bin" / "invocations.log"

    def write_proto(self, body: str, name: str = "test.proto") -> Path:
        path = self.proto_root / name
        path.write_text('syntax = "proto3";\n\n' + body + "\n", encoding="utf-8")
        return path


@pytest.fixture
def project(tmp_path: Path) -> Project:
    root = tmp_path / "project"
    proto_root = root / "src" / "main" / "proto"
    proto_root.mkdir(parents=True)
    return Project(root=root, proto_root=proto_root, output_dir=root / "target")


@pytest.fixture
def gate_config(project: Project, binary_resources: Path, tmp_path: Path) -> GateConfig:
    return GateConfig(
        proto_root=project.proto_root,
        output_dir=project.output_dir,
        classifier=CLASSIFIER,
        binary_resources=binary_resources,
        local_repository=tmp_path / "m2",
        offline=True,
        working_dir=project.root,
    )


class ScriptedRunner:
    """Process runner double that replays canned exit codes and output."""

    def __init__(self, responses: Dict[str, Tuple[int, List[str]]]):
        self.responses = responses
        self.calls: List[dict] = []

    def run(self, argv, env=None, cwd=None, on_line=None) -> CommandResult:
        argv = [str(a) for a in argv]
        self.calls.append({"argv": argv, "env": env, "cwd": cwd})
        code, lines = self.responses.get(argv[1], (0, []))
        for line in lines:
            if on_line is not None:
                on_line(line)
        return CommandResult(code=code, stdout="\n".join(lines), argv=argv, lines=list(lines))

    @property
    def commands(self) -> List[str]:
        return [call["argv"][1] for call in self.calls]


@pytest.fixture
def scripted_runner():
    """Factory for ScriptedRunner instances."""

    def make(**responses: Tuple[int, List[str]]) -> ScriptedRunner:
        return ScriptedRunner(responses)

    return make
