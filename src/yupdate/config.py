import os
from dataclasses import dataclass, fields, replace
from typing import Any

DEFAULT_OVERLAY_PREFIX = "/var/lib/YaST2/overlayfs"
DEFAULT_MOUNTS_FILE = "/proc/self/mounts"

DEFAULT_OVERLAY_DIRS = (
    "/usr/lib/YaST2",
    "/usr/lib64/YaST2",
    "/usr/share/autoinstall",
    "/usr/share/applications/YaST2",
)

# writable themselves, but their subdirectories are symlinks into read-only
# locations, so each subdirectory gets its own overlay
DEFAULT_OVERLAY_PARENT_DIRS = ("/usr/share/YaST2",)

DEFAULT_SKIP_PATTERNS = (
    "/usr/share/doc/",
    "/usr/share/man/",
    "/usr/share/fillup-templates/",
    ".*.sw[a-p]",
    "*~",
)

PREFIX_ENV_VAR = "YUPDATE_OVERLAY_PREFIX"


def get_config_path(custom_path=None):
    if custom_path:
        return custom_path
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return os.path.join(xdg_config_home, "yupdate", "config.yaml")


def read_config(custom_path=None):
    import yaml

    config_path = get_config_path(custom_path)
    try:
        with open(config_path, "r", encoding="utf-8") as file:
            return yaml.safe_load(file) or {}
    except FileNotFoundError:
        return {}


@dataclass(frozen=True)
class Settings:
    overlay_prefix: str = DEFAULT_OVERLAY_PREFIX
    overlay_dirs: tuple[str, ...] = DEFAULT_OVERLAY_DIRS
    overlay_parent_dirs: tuple[str, ...] = DEFAULT_OVERLAY_PARENT_DIRS
    mounts_file: str = DEFAULT_MOUNTS_FILE
    skip_patterns: tuple[str, ...] = DEFAULT_SKIP_PATTERNS
    system_root: str = "/"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        if not isinstance(data, dict):
            raise ValueError("config must be a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"config has invalid keys: {', '.join(unknown)}")

        values: dict[str, Any] = {}
        for key in ("overlay_prefix", "mounts_file", "system_root"):
            if key in data:
                if not isinstance(data[key], str) or not data[key]:
                    raise ValueError(f"config.{key} must be a non-empty string")
                values[key] = data[key]
        for key in ("overlay_dirs", "overlay_parent_dirs", "skip_patterns"):
            if key in data:
                items = data[key]
                if items is None:
                    items = []
                if not isinstance(items, list) or not all(
                    isinstance(item, str) for item in items
                ):
                    raise ValueError(f"config.{key} must be a list of strings")
                values[key] = tuple(items)
        return cls(**values)


def load_settings(custom_path=None) -> Settings:
    """Read the YAML config and apply environment overrides."""
    settings = Settings.from_dict(read_config(custom_path))
    prefix = (os.environ.get(PREFIX_ENV_VAR) or "").strip()
    if prefix:
        settings = replace(settings, overlay_prefix=prefix)
    return settings
