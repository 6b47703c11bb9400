"""
Reading request bodies with a size limit.
"""
from typing import AsyncIterator, Optional

from pastebin.errors import BodyReadError, TooBig


async def read_body(
    stream: AsyncIterator[bytes],
    limit: int,
    declared_length: Optional[int] = None,
) -> bytes:
    """
    Load a request body into memory.

    If `declared_length` is given exactly that many bytes are read, and a
    stream that ends early is an error. Otherwise chunks are accumulated until
    the end of the stream.

    Args:
        stream: Async iterator of body chunks (e.g. ``request.stream()``)
        limit: Maximum allowed body size in bytes
        declared_length: Length announced by the client, if any

    Returns:
        The whole body

    Raises:
        TooBig: If the declared or actual size exceeds `limit`
        BodyReadError: If the stream ends before `declared_length` bytes
    """
    if declared_length is not None and declared_length > limit:
        raise TooBig(f"Declared length {declared_length} exceeds {limit} bytes")

    expected = declared_length if declared_length is not None else limit
    buffer = bytearray()
    async for chunk in stream:
        if not chunk:
            continue
        if len(buffer) + len(chunk) > expected:
            if declared_length is None:
                raise TooBig(f"Paste exceeds {limit} bytes")
            # Anything beyond the declared length is not part of the paste.
            buffer += chunk[: expected - len(buffer)]
            break
        buffer += chunk
        if declared_length is not None and len(buffer) == expected:
            break

    if declared_length is not None and len(buffer) < declared_length:
        raise BodyReadError(
            f"Expected {declared_length} bytes, got only {len(buffer)}"
        )
    return bytes(buffer)
