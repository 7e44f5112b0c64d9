from .engine import (
    ChangeKind,
    ChangeRecord,
    PatchEngine,
    PatchResult,
    check_source,
)
from .stage import LocalSourceStager

__all__ = [
    "ChangeKind",
    "ChangeRecord",
    "LocalSourceStager",
    "PatchEngine",
    "PatchResult",
    "check_source",
]
