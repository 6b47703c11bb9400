"""
Short paste identifiers.

Identifiers are turned into URL-safe base64 strings without padding. Counter
identifiers are trimmed of leading zero bytes so that small numbers give short
strings; object identifiers are fixed width and always use all their bytes.
"""
import base64
import binascii
import re

from pastebin.errors import IdDecodeError

_ALPHABET_RE = re.compile(r"^[A-Za-z0-9_-]*$")

COUNTER_WIDTH = 8
OBJECT_ID_WIDTH = 12


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(src: str) -> bytes:
    if not _ALPHABET_RE.match(src):
        raise IdDecodeError(src, "invalid character")
    try:
        raw = base64.urlsafe_b64decode(src + "=" * (-len(src) % 4))
    except (binascii.Error, ValueError) as e:
        raise IdDecodeError(src, str(e)) from e
    # Python ignores unused trailing bits, a strict decoder does not.
    if _b64encode(raw) != src:
        raise IdDecodeError(src, "non-canonical encoding")
    return raw


def trim(raw: bytes) -> bytes:
    """Strip leading zero bytes, keeping at least one byte."""
    return raw.lstrip(b"\x00") or b"\x00"


class IdCodec:
    """Converts identifiers to and from their short string form."""

    def encode(self, paste_id) -> str:
        raise NotImplementedError

    def decode(self, src: str):
        raise NotImplementedError


class CounterIdCodec(IdCodec):
    """Codec for unsigned 64-bit counter identifiers."""

    def encode(self, paste_id: int) -> str:
        if paste_id < 0 or paste_id >= 1 << (8 * COUNTER_WIDTH):
            raise ValueError(f"Counter id {paste_id} is out of range")
        return _b64encode(trim(paste_id.to_bytes(COUNTER_WIDTH, "big")))

    def decode(self, src: str) -> int:
        raw = _b64decode(src)
        if not raw or len(raw) > COUNTER_WIDTH:
            raise IdDecodeError(
                src, f"expected 1 to {COUNTER_WIDTH} bytes, got {len(raw)}"
            )
        return int.from_bytes(raw, "big")


class ObjectIdCodec(IdCodec):
    """Codec for fixed-width 12-byte identifiers (MongoDB ObjectIds)."""

    width = OBJECT_ID_WIDTH

    def encode(self, paste_id: bytes) -> str:
        if len(paste_id) != self.width:
            raise ValueError(
                f"Expected an id of {self.width} bytes, got {len(paste_id)}"
            )
        return _b64encode(bytes(paste_id))

    def decode(self, src: str) -> bytes:
        raw = _b64decode(src)
        if len(raw) != self.width:
            raise IdDecodeError(
                src, f"expected an id of {self.width} bytes, got {len(raw)}"
            )
        return raw


_counter_codec = CounterIdCodec()


def encode_id(paste_id: int) -> str:
    """Encode a counter id into a string as short as possible."""
    return _counter_codec.encode(paste_id)


def decode_id(src: str) -> int:
    """Convert a string produced by `encode_id` back into a number."""
    return _counter_codec.decode(src)
