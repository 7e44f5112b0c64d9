"""
Mapping between absolute directory paths and flat storage names.

``/usr/lib/YaST2`` is stored as ``_usr_lib_YaST2``; literal underscores are
doubled first, so ``/usr/lib/my_dir`` becomes ``_usr_lib_my__dir``.

Decoding differs from the original Ruby tool for odd runs of three or more
underscores: ``_usr___private`` is read as ``/usr/_private`` (separator
first), where the original yields ``/usr__private``.
"""

import os
import re

UPPER = "upper"
WORK = "workdir"
MIRROR = "original"

STORAGE_KINDS = (UPPER, WORK, MIRROR)

_UNDERSCORE_RUN_RE = re.compile(r"_+")
_SLASH_RUN_RE = re.compile(r"/{2,}")


def escape(path: str) -> str:
    return path.replace("_", "__").replace("/", "_")


def _decode_run(match: re.Match) -> str:
    length = len(match.group(0))
    if length % 2 == 0:
        return "_" * (length // 2)
    # an odd run holds exactly one former separator; it is read as leading
    return "/" + "_" * (length // 2)


def unescape(name: str) -> str:
    path = _UNDERSCORE_RUN_RE.sub(_decode_run, name)
    return _SLASH_RUN_RE.sub("/", path)


def storage_dir(prefix: str, kind: str, path: str) -> str:
    """Return the storage directory of ``kind`` for the (resolved) ``path``."""
    if kind not in STORAGE_KINDS:
        raise ValueError(f"Unknown storage kind: {kind}")
    return os.path.join(prefix, kind, escape(path))
