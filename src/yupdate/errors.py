from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .system import CommandResult


class YupdateError(Exception):
    """Base class for every error raised by yupdate."""


class PreconditionError(YupdateError):
    """Raised before any filesystem mutation when a run cannot proceed."""


class CommandError(YupdateError):
    def __init__(self, result: CommandResult, message: str | None = None):
        self.result = result
        detail = (result.stderr or result.stdout or "").strip()
        text = message or f"Command failed ({result.returncode}): {result.command}"
        if detail:
            text = f"{text}\n{detail}"
        super().__init__(text)


class MountError(CommandError):
    """A mount or umount invocation failed."""


class BuildError(CommandError):
    """The staging build step failed."""


class CopyError(YupdateError):
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot write {path}: {reason}")
