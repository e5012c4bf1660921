"""File handler module: path containment, encoding-aware read/write, discovery.

Provides the vault I/O used by the sync engine.  All functions here are
synchronous; the engine calls them through ``run_sync()``.
"""

import logging
import os
import re
import tempfile
from pathlib import Path, PurePosixPath

from charset_normalizer import from_bytes

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"

_UNSAFE_NAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

# =============================================================================
# Path Validation
# =============================================================================


def resolve_in_root(root: Path, relative: str) -> Path:
    """Resolve a vault-relative path, refusing anything that escapes *root*.

    Raises:
        ValueError: If the path is absolute or resolves outside *root*.
    """
    if PurePosixPath(relative).is_absolute() or Path(relative).is_absolute():
        raise ValueError(f"Path must be relative to the vault: {relative}")
    root_resolved = root.resolve()
    resolved = (root_resolved / relative).resolve()
    if not resolved.is_relative_to(root_resolved):
        raise ValueError(
            f"Path is outside the vault: {resolved} not under {root_resolved}"
        )
    return resolved


def to_vault_path(root: Path, path: Path) -> str:
    """POSIX path of *path* relative to *root*."""
    return path.resolve().relative_to(root.resolve()).as_posix()


def is_in_folder(relative: str, folder: str) -> bool:
    """True if the vault-relative *relative* lies under *folder* ("" = whole vault)."""
    if not folder:
        return True
    return PurePosixPath(relative).is_relative_to(PurePosixPath(folder))


def sanitize_file_name(name: str) -> str:
    """Make *name* safe to use as one path component."""
    cleaned = _UNSAFE_NAME_CHARS.sub("_", name).strip()
    # A name made only of dots would resolve to the folder or its parent
    if not cleaned.strip("."):
        cleaned = cleaned.replace(".", "_") or "_"
    return cleaned


# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Uses charset-normalizer on the raw bytes and defaults to UTF-8 for
    empty files or when detection fails.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def read_text(path: Path) -> str:
    return read_file_with_encoding(path)[0]


def ensure_parent(path: Path) -> bool:
    """Create *path*'s parent folders; return False instead of raising."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("Could not create folder %s: %s", path.parent, e)
        return False
    return True


def write_file(path: Path, content: str, encoding: str = "utf-8") -> int:
    """Write *content* through a temp file and ``os.replace``.

    Parent folders must already exist.

    Returns:
        Number of bytes written.
    """
    encoded = content.encode(encoding)
    fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(encoded)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
    return len(encoded)


def file_mtime_ms(path: Path) -> int:
    """Last-modified time in epoch milliseconds."""
    return int(path.stat().st_mtime * 1000)


# =============================================================================
# Discovery
# =============================================================================


def list_markdown_files(root: Path, folder: str = "") -> list[str]:
    """Vault-relative POSIX paths of every ``.md`` file under *folder*.

    Hidden directories (``.git``, the state directory) are skipped.
    """
    base = root / folder if folder else root
    if not base.is_dir():
        return []

    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for name in sorted(filenames):
            if name.endswith(MARKDOWN_SUFFIX):
                found.append(to_vault_path(root, Path(dirpath) / name))
    return found
