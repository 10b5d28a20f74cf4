"""Binary-versus-text classification for blob payloads."""

from __future__ import annotations

import base64
import binascii
import re
from typing import Optional

from .models import FileContent

CONTROL_BYTE_THRESHOLD = 0.02
DEFAULT_MIME = "application/octet-stream"

# Control characters excluding tab, newline, vertical tab, form feed and carriage return.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0e-\x1f]")

_MIME_BY_SUFFIX = (
    (".json", "application/json"),
    (".js", "text/javascript"),
    (".jsx", "text/javascript"),
    (".ts", "text/javascript"),
    (".tsx", "text/javascript"),
    (".md", "text/markdown"),
    (".css", "text/css"),
    (".html", "text/html"),
    (".png", "image/png"),
    (".jpg", "image/jpeg"),
    (".jpeg", "image/jpeg"),
    (".svg", "image/svg+xml"),
)


def guess_mime(path: str | None) -> str:
    """Guess a mime type from the file extension, falling back to octet-stream."""
    if not path:
        return DEFAULT_MIME
    lower = path.lower()
    for suffix, mime in _MIME_BY_SUFFIX:
        if lower.endswith(suffix):
            return mime
    return DEFAULT_MIME


def control_ratio(text: str) -> float:
    """Fraction of ``text`` made of non-whitespace control characters."""
    if not text:
        return 0.0
    return len(_CONTROL_CHARS.findall(text)) / max(1, len(text))


def is_probably_text(text: str | None) -> bool:
    return text is not None and control_ratio(text) < CONTROL_BYTE_THRESHOLD


def decode_base64_text(payload: str) -> Optional[str]:
    """Decode a base64 blob into text, or ``None`` when it is not valid base64."""
    try:
        raw = base64.b64decode(payload.replace("\n", ""), validate=True)
    except (binascii.Error, ValueError):
        return None
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        # Latin-1 never fails; the control-byte ratio then decides the outcome.
        return raw.decode("latin-1")


def classify_blob(
    path: str,
    payload: str | None,
    *,
    encoding: str | None = "base64",
    size: int | None = None,
) -> FileContent:
    """Turn a blob API payload into a :class:`FileContent`.

    An undecodable payload, or decoded text with at least
    :data:`CONTROL_BYTE_THRESHOLD` control bytes, is treated as binary: the
    inline text is suppressed and the base64 payload kept for download.
    """
    mime = guess_mime(path)
    if encoding != "base64":
        text = payload or ""
        return FileContent(path=path, text=text, is_binary=False, mime=mime, size=size)

    decoded = decode_base64_text(payload or "")
    if is_probably_text(decoded):
        return FileContent(
            path=path, text=decoded, is_binary=False, mime=mime, size=size, base64=payload
        )
    return FileContent(path=path, text=None, is_binary=True, mime=mime, size=size, base64=payload)


def classify_bytes(path: str, raw: bytes, *, size: int | None = None) -> FileContent:
    """Classify raw bytes, e.g. when the blob was fetched with the raw media type."""
    encoded = base64.b64encode(raw).decode("ascii")
    return classify_blob(path, encoded, size=size if size is not None else len(raw))


__all__ = [
    "CONTROL_BYTE_THRESHOLD",
    "classify_blob",
    "classify_bytes",
    "control_ratio",
    "decode_base64_text",
    "guess_mime",
    "is_probably_text",
]
