"""Lock-file driven state machine around ``protolock``.

Without a ``proto.lock`` the schema is pristine and protolock is initialized.
With one, ``status`` compares the current schema against the baseline and, if
nothing incompatible was found, ``commit`` records the current schema as the
new baseline.
"""

from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .context import lock_file_path
from .errors import ConfigurationError
from .process import LineSink, ProcessRunner

logger = logging.getLogger(__name__)
tool_logger = logging.getLogger("protolock_gate.tool")

FAILURE_MESSAGE = "Backwards compatibility check failed!"
LOCKDIR_FLAGS = ("--lockdir", "-lockdir")


class Command(Enum):
    INIT = "init"
    STATUS = "status"
    COMMIT = "commit"


class LockState(Enum):
    NO_LOCK = "no-lock"
    LOCKED = "locked"


class ResultKind(Enum):
    INITIALIZED = "initialized"
    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"


@dataclass
class CompatibilityResult:
    """Outcome of one compatibility check."""

    kind: ResultKind
    message: str
    diagnostics: List[str] = field(default_factory=list)
    cause: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind in (ResultKind.INITIALIZED, ResultKind.PASSED)

    @classmethod
    def initialized(cls) -> "CompatibilityResult":
        return cls(ResultKind.INITIALIZED, "Initialized protolock.")

    @classmethod
    def passed(cls) -> "CompatibilityResult":
        return cls(ResultKind.PASSED, "Backwards compatibility check passed.")

    @classmethod
    def failed(cls, diagnostics: Sequence[str]) -> "CompatibilityResult":
        return cls(ResultKind.FAILED, FAILURE_MESSAGE, list(diagnostics))

    @classmethod
    def error(
        cls, cause: str, diagnostics: Sequence[str] = ()
    ) -> "CompatibilityResult":
        return cls(ResultKind.ERROR, cause, list(diagnostics), cause=cause)


@dataclass
class CommandInvocation:
    """One protolock command line."""

    command: Command
    lock_dir: Path
    proto_root: Path
    plugin_names: List[str] = field(default_factory=list)
    options: List[str] = field(default_factory=list)
    path_env: str = ""
    working_dir: Optional[Path] = None

    def argv(self, binary: Union[str, Path]) -> List[str]:
        args = [str(binary), self.command.value]
        if self.command is Command.STATUS and self.plugin_names:
            args.append("--plugins=" + ",".join(self.plugin_names))
        args.append(f"--lockdir={self.lock_dir}")
        args.append(f"--protoroot={self.proto_root}")
        args.extend(self.options)
        return args

    def env(self) -> dict:
        return {"PATH": self.path_env}


def parse_options(options: Union[str, Sequence[str], None]) -> List[str]:
    """Split free-form options and reject a lock directory override.

    Raises:
        ConfigurationError: if the options cannot be split or set ``--lockdir``
    """
    if options is None:
        return []
    if isinstance(options, str):
        try:
            tokens = shlex.split(options)
        except ValueError as e:
            raise ConfigurationError(f"Invalid protolock options {options!r}: {e}") from e
    else:
        tokens = [str(opt) for opt in options]

    for token in tokens:
        flag = token.split("=", 1)[0]
        if flag in LOCKDIR_FLAGS:
            raise ConfigurationError(
                f"The protolock options must not set the lock directory ({token}). "
                "Use the 'lock_dir' setting instead."
            )
    return tokens


def lock_state(lock_dir: Path) -> LockState:
    return LockState.LOCKED if lock_file_path(lock_dir).exists() else LockState.NO_LOCK


class LockStateMachine:
    """Runs protolock init/status/commit and interprets the exit codes."""

    def __init__(self, runner: Optional[ProcessRunner] = None) -> None:
        self.runner = runner or ProcessRunner()

    def run_command(
        self,
        invocation: CommandInvocation,
        binary: Union[str, Path],
        sink: Optional[LineSink] = None,
    ):
        if sink is None:
            sink = _default_sink(invocation.command)
        return self.runner.run(
            invocation.argv(binary),
            env=invocation.env(),
            cwd=invocation.working_dir,
            on_line=sink,
        )

    def check(
        self,
        lock_dir: Path,
        proto_root: Path,
        binary: Union[str, Path],
        plugin_names: Sequence[str] = (),
        path_env: Optional[str] = None,
        extra_options: Union[str, Sequence[str], None] = None,
        working_dir: Optional[Path] = None,
        sink: Optional[LineSink] = None,
    ) -> CompatibilityResult:
        """Initialize, or verify and commit, the compatibility baseline.

        Raises:
            ConfigurationError: if ``extra_options`` overrides the lock directory
            SubprocessIOError: if protolock cannot be run
        """
        options = parse_options(extra_options)
        if path_env is None:
            path_env = os.environ.get("PATH", "")

        def invocation(command: Command) -> CommandInvocation:
            return CommandInvocation(
                command=command,
                lock_dir=Path(lock_dir),
                proto_root=Path(proto_root),
                plugin_names=list(plugin_names),
                options=options,
                path_env=path_env,
                working_dir=working_dir,
            )

        if lock_state(Path(lock_dir)) is LockState.NO_LOCK:
            result = self.run_command(invocation(Command.INIT), binary, sink)
            if result.code != 0:
                return CompatibilityResult.error(
                    f"protolock init failed with exit code {result.code}", result.lines
                )
            logger.info("Initialized protolock.")
            return CompatibilityResult.initialized()

        status = self.run_command(invocation(Command.STATUS), binary, sink)
        if status.code != 0:
            return CompatibilityResult.failed(status.lines)

        commit = self.run_command(invocation(Command.COMMIT), binary, sink)
        if commit.code != 0:
            return CompatibilityResult.error(
                f"protolock commit failed with exit code {commit.code}: "
                "could not persist baseline",
                commit.lines,
            )
        logger.info("Backwards compatibility check passed.")
        return CompatibilityResult.passed()


def _default_sink(command: Command) -> LineSink:
    if command is Command.STATUS:
        return tool_logger.error
    return tool_logger.info
