from .manager import ChangedFile, Overlay, OverlayManager, probe_writable
from .mounts import MountEntry, parse_mount_table, read_mount_table
from .paths import escape, unescape

__all__ = [
    "ChangedFile",
    "MountEntry",
    "Overlay",
    "OverlayManager",
    "escape",
    "parse_mount_table",
    "probe_writable",
    "read_mount_table",
    "unescape",
]
