"""Process execution for the verification tool."""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

from .errors import SubprocessIOError

logger = logging.getLogger(__name__)

LineSink = Callable[[str], None]


@dataclass
class CommandResult:
    """Result of executing a command."""

    code: int
    stdout: str
    argv: List[str]
    cwd: Optional[str] = None
    lines: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.code == 0


class ProcessRunner:
    """Blocking process runner.

    Commands are always given as an argument vector and run without a shell.
    The environment passed in replaces the caller's environment entirely.
    Standard output is drained line by line before the exit status is read;
    standard error is inherited from the caller.
    """

    def __init__(self, dry_run: bool = False) -> None:
        self.dry_run = dry_run

    def run(
        self,
        argv: Sequence[Union[str, Path]],
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[Union[str, Path]] = None,
        on_line: Optional[LineSink] = None,
    ) -> CommandResult:
        """Execute a command and return structured results.

        Args:
            argv: Executable followed by its arguments
            env: Complete environment for the child
            cwd: Working directory for the child
            on_line: Called with every stdout line, in order, as it arrives

        Raises:
            SubprocessIOError: if the process cannot be started or read
        """
        cmd = [str(arg) for arg in argv]
        workdir = str(cwd) if cwd is not None else None
        cmd_str = " ".join(map(shlex.quote, cmd))
        logger.info(f"{'[DRY RUN] ' if self.dry_run else ''}Running: {cmd_str}")

        if self.dry_run:
            return CommandResult(code=0, stdout="", argv=cmd, cwd=workdir)

        lines: List[str] = []
        try:
            with subprocess.Popen(
                cmd,
                cwd=workdir,
                env=env,
                stdout=subprocess.PIPE,
                stderr=None,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
                shell=False,
            ) as proc:
                for raw in proc.stdout:
                    line = raw.rstrip("\r\n")
                    lines.append(line)
                    if on_line is not None:
                        on_line(line)
                code = proc.wait()
        except OSError as exc:
            raise SubprocessIOError(f"Failed to run {cmd_str}: {exc}") from exc

        logger.debug(f"{cmd[0]} exited with {code}")
        return CommandResult(
            code=code,
            stdout="\n".join(lines) + ("\n" if lines else ""),
            argv=cmd,
            cwd=workdir,
            lines=lines,
        )
