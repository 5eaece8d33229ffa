"""File helpers for uploads and exported payloads."""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path

__all__ = [
    "ACCEPTED_UPLOAD_EXTENSIONS",
    "MAX_UPLOAD_BYTES",
    "check_upload_candidate",
    "export_filename",
    "safe_filename",
    "resolve_download_dir",
    "write_bytes",
]

ACCEPTED_UPLOAD_EXTENSIONS: frozenset[str] = frozenset(
    {".pdf", ".docx", ".doc", ".jpg", ".jpeg", ".png", ".txt"}
)
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
_DEFAULT_DOWNLOAD_DIR = Path.home() / "Downloads"
_FALLBACK_BASENAME = "document"
_FALLBACK_DOWNLOAD_NAME = "download"


def check_upload_candidate(path: Path | str) -> list[str]:
    """Return advisory warnings for a file the backend may reject.

    The backend is authoritative; callers should log these, not block on them.
    """

    target = Path(path)
    warnings: list[str] = []
    suffix = target.suffix.lower()
    if suffix not in ACCEPTED_UPLOAD_EXTENSIONS:
        accepted = ", ".join(sorted(ext.lstrip(".").upper() for ext in ACCEPTED_UPLOAD_EXTENSIONS))
        warnings.append(f"{target.name}: unsupported file type (expected one of {accepted})")
    try:
        size = target.stat().st_size
    except OSError:
        return warnings
    if size > MAX_UPLOAD_BYTES:
        warnings.append(f"{target.name}: {size} bytes exceeds the 10MB upload limit")
    return warnings


def export_filename(original_name: str | None, extension: str) -> str:
    """Derive ``<name before the first dot>.<extension>`` for an export."""

    base = (original_name or "").split(".")[0].strip()
    return f"{base or _FALLBACK_BASENAME}.{extension}"


def safe_filename(filename: str | None) -> str:
    """Strip directory components so a name cannot escape its target folder."""

    name = Path((filename or "").replace("\\", "/")).name
    name = re.sub(r"[\x00-\x1f]", "", name).strip()
    if name in {"", ".", ".."}:
        return _FALLBACK_DOWNLOAD_NAME
    return name


def resolve_download_dir(directory: Path | str | None = None) -> Path:
    """Return (and create) the folder exported files are written to."""

    env_override = os.environ.get("DOCSMITH_DOWNLOAD_DIR")
    resolved = Path(directory or env_override or _DEFAULT_DOWNLOAD_DIR).expanduser()
    resolved.mkdir(parents=True, exist_ok=True)
    return resolved


def write_bytes(path: Path | str, data: bytes) -> Path:
    """Write ``data`` to ``path`` atomically.

    The bytes land in a temporary sibling first and are renamed into place;
    the temporary file never outlives this call.
    """

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    descriptor, tmp_name = tempfile.mkstemp(
        dir=str(target.parent), prefix=f".{target.name}.", suffix=".part"
    )
    try:
        with os.fdopen(descriptor, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    finally:
        if os.path.exists(tmp_name):
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
    return target
