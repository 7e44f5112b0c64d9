"""Thin wrapper around external commands (mount, umount, rake)."""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Sequence

from .errors import CommandError, PreconditionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command(self) -> str:
        return shlex.join(self.args)

    def check(self, error_cls: type[CommandError] = CommandError) -> "CommandResult":
        """Return self, or raise ``error_cls`` if the command failed."""
        if not self.ok:
            raise error_cls(self)
        return self


class CommandRunner:
    """Runs external commands synchronously and captures their output."""

    def run(self, args: Sequence[str], *, cwd: str | None = None) -> CommandResult:
        args = tuple(args)
        self.require(args[0])

        logger.debug("Running: %s", shlex.join(args))
        proc = subprocess.run(args, cwd=cwd, capture_output=True, text=True)
        result = CommandResult(args, proc.returncode, proc.stdout, proc.stderr)
        if not result.ok:
            logger.debug("Command exited with %d: %s", proc.returncode, proc.stderr.strip())
        return result

    def require(self, *tools: str) -> None:
        """Raise PreconditionError unless every tool is on PATH."""
        missing = [tool for tool in tools if shutil.which(tool) is None]
        if missing:
            raise PreconditionError(f"Required tool not found: {', '.join(missing)}")
