"""
Errors raised while processing pastebin requests.

Every error carries the HTTP status it is reported with. Errors caused by the
request map to 4xx codes; errors on the server side (storage, templates,
configuration) map to 500 and hide their details from the client.
"""


class PastebinError(Exception):
    """Base class for all request processing errors."""

    status_code = 400
    message = "Bad request"

    def __init__(self, detail: str = None):
        self.detail = detail or self.message
        super().__init__(self.detail)

    @property
    def public_detail(self) -> str:
        """Text that is safe to send back to the client."""
        if self.status_code >= 500:
            return self.message
        return self.detail


class BodyReadError(PastebinError):
    """Request body could not be read in full."""

    message = "Failed to read request body"


class TooBig(PastebinError):
    """Paste exceeds the storage size limit."""

    status_code = 413
    message = "Too large paste"


class IdDecodeError(PastebinError):
    """Identifier string is malformed."""

    message = "Malformed paste id"

    def __init__(self, src: str, reason: str):
        self.src = src
        self.reason = reason
        super().__init__(f"Can't decode id {src!r}: {reason}")


class IdNotFound(PastebinError):
    status_code = 404
    message = "ID not found"

    def __init__(self, paste_id: str):
        self.paste_id = paste_id
        super().__init__(f"Id {paste_id} not found")


class NoIdSegment(PastebinError):
    message = "ID segment not found in the URL"


class InvalidArgument(PastebinError):
    """A query argument or header has an unusable value."""

    message = "Invalid argument"


class UrlError(PastebinError):
    status_code = 500
    message = "Can't build URL"


class TemplateRenderError(PastebinError):
    status_code = 500
    message = "Failed to render page"


class StorageError(PastebinError):
    """
    Backend failure.

    The original backend exception is kept as ``__cause__`` (raise ... from)
    so it shows up in server logs.
    """

    status_code = 500
    message = "Internal storage error"
