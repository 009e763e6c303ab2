import os
import re
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import unquote


def source_name_from_url(url: str) -> str:
    """Derive the on-disk name of a download from its URL.

    The URL is percent-decoded first. Mirrors commonly serve files through a
    query string (``...?file=rom.zip``) so the text after the last ``=`` wins;
    otherwise the text after the last ``/`` is used.
    """
    decoded = unquote(url)
    mark = decoded.rfind('=')
    if mark == -1:
        mark = decoded.rfind('/')
    return decoded[mark + 1:]


def artifact_name(url: str, copy_to: Optional[str] = None) -> str:
    """Final artifact name: the manifest's ``copy_to`` override or the URL tail."""
    if copy_to:
        return copy_to
    return source_name_from_url(url)


_DRIVE_RE = re.compile(r'^[A-Za-z]:')


def is_enclosed_name(name: str) -> bool:
    """Return True when an archive member name stays inside the extraction root.

    Rejects NUL bytes, absolute paths (POSIX or Windows style) and any ``..``
    that would climb above the root. ``a/../b`` is fine, ``../b`` is not.
    """
    if not name or '\0' in name:
        return False
    normalized = name.replace('\\', '/')
    if normalized.startswith('/') or _DRIVE_RE.match(normalized):
        return False

    depth = 0
    for part in PurePosixPath(normalized).parts:
        if part == '..':
            depth -= 1
            if depth < 0:
                return False
        elif part not in ('.', ''):
            depth += 1
    return True


def is_within(root: Path, candidate: Path) -> bool:
    """True if ``candidate`` resolves to a location inside ``root``."""
    root_real = os.path.realpath(root)
    cand_real = os.path.realpath(candidate)
    return cand_real == root_real or cand_real.startswith(root_real + os.sep)
