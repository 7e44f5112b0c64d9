"""Reading the live kernel mount table."""

import re
from dataclasses import dataclass

_OCTAL_ESCAPE_RE = re.compile(r"\\([0-7]{3})")


@dataclass(frozen=True)
class MountEntry:
    device: str
    mount_point: str
    fs_type: str
    options: tuple[str, ...] = ()

    def option(self, name: str) -> str | None:
        """Return the value of a ``name=value`` mount option."""
        prefix = f"{name}="
        for opt in self.options:
            if opt.startswith(prefix):
                return opt[len(prefix) :]
        return None


def _decode(field: str) -> str:
    # the kernel escapes space, tab, newline and backslash as \ooo
    return _OCTAL_ESCAPE_RE.sub(lambda m: chr(int(m.group(1), 8)), field)


def parse_mount_table(text: str) -> list[MountEntry]:
    entries = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 4:
            continue
        device, mount_point, fs_type, options = parts[:4]
        entries.append(
            MountEntry(
                device=_decode(device),
                mount_point=_decode(mount_point),
                fs_type=fs_type,
                options=tuple(_decode(opt) for opt in options.split(",")),
            )
        )
    return entries


def read_mount_table(mounts_file: str) -> list[MountEntry]:
    with open(mounts_file, "r", encoding="utf-8") as file:
        return parse_mount_table(file.read())
