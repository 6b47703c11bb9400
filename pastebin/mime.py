"""
MIME type helpers.

Types are guessed from a file name extension first and from the content
(libmagic via python-magic) when the extension tells nothing.
"""
import logging
import mimetypes
import re
from pathlib import Path
from typing import Optional, Union

import magic

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "text/plain"

# type "/" subtype [; parameters], RFC 7231 tokens.
_TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_CONTENT_TYPE_RE = re.compile(rf"^{_TOKEN}/{_TOKEN}(\s*;.*)?$")

# How much of a file is handed to libmagic when sniffing static assets.
_SNIFF_SIZE = 2048

# Built-in table only, so guesses don't depend on the host's mime.types.
_MIME_TYPES = mimetypes.MimeTypes(filenames=())


def is_text(mime_type: str) -> bool:
    """Checks whether a given mime type represents some text."""
    return mime_type == "application/x-sh" or mime_type.startswith("text/")


def to_content_type(mime_type: str) -> str:
    """Use the mime type as a Content-Type value, or plain text if it is not valid."""
    if mime_type and _CONTENT_TYPE_RE.match(mime_type.strip()):
        return mime_type.strip()
    logger.debug(f"Can't use {mime_type!r} as a content type")
    return DEFAULT_CONTENT_TYPE


def classify_by_extension(file_name: Optional[str]) -> Optional[str]:
    if not file_name:
        return None
    mime_type, _ = _MIME_TYPES.guess_type(file_name, strict=False)
    return mime_type


def classify_by_content(data: bytes) -> str:
    return magic.from_buffer(data, mime=True)


def resolve(file_name: Optional[str], data: bytes) -> str:
    """Guess a mime type of given data and its file name (if any)."""
    return classify_by_extension(file_name) or classify_by_content(data)


def file_content_type(path: Union[str, Path]) -> str:
    """Guess a static file's content type."""
    path = Path(path)
    mime_type = classify_by_extension(path.name)
    if mime_type is None:
        with path.open("rb") as f:
            mime_type = classify_by_content(f.read(_SNIFF_SIZE))
    return to_content_type(mime_type)
