from __future__ import annotations

import hashlib
from datetime import date, datetime

from werkzeug.utils import secure_filename


def parse_date(s: str | None) -> date | None:
    """Parse YYYY-MM-DD (HTML date input); blank means None."""
    if not s:
        return None
    s = s.strip()
    if not s:
        return None
    return date.fromisoformat(s)


def parse_positive_number(raw: str | None) -> float | None:
    """Parse a form number (accepts comma decimals). Returns None unless > 0."""
    raw = (raw or "").strip().replace(",", ".")
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def file_digest_and_bytes(file_bytes: bytes) -> tuple[str, int]:
    h = hashlib.sha256()
    h.update(file_bytes)
    return (h.hexdigest(), len(file_bytes))


def sanitize_upload_filename(filename: str, default: str = "upload.bin") -> str:
    fn = secure_filename(filename or "")
    return fn or default


def timestamped_key(prefix: str, filename: str, now: datetime | None = None) -> str:
    """Build `<prefix>/<unix-ms>_<safe filename>` so repeated uploads never collide."""
    now = now or datetime.utcnow()
    stamp = int(now.timestamp() * 1000)
    return f"{prefix.rstrip('/')}/{stamp}_{sanitize_upload_filename(filename)}"


IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


def validate_image_upload(filename: str, content_type: str | None, size: int, max_bytes: int) -> str:
    """
    Check an uploaded image (extension, content type, size). Returns the
    content type to store.
    """
    name = (filename or "").lower()
    ext = name[name.rfind("."):] if "." in name else ""
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ext not in IMAGE_EXTENSIONS or not ctype.startswith("image/"):
        raise ValueError("Only image files are accepted (jpg, png, gif, webp).")
    if size <= 0:
        raise ValueError("The file is empty.")
    if size > max_bytes:
        raise ValueError(f"Image too large. Maximum is {max_bytes // (1024 * 1024)}MB.")
    return ctype
