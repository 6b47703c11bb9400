"""
Paste routes.
Handles upload form, static files, fetch, create and delete operations.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from pastebin.errors import InvalidArgument, NoIdSegment
from pastebin.handler import PasteHandler
from pastebin.reader import read_body

router = APIRouter()
logger = logging.getLogger(__name__)


def get_handler(request: Request) -> PasteHandler:
    """The handler built at startup, see `pastebin.main.create_app`."""
    return request.app.state.handler


def _content_length(request: Request) -> Optional[int]:
    value = request.headers.get("content-length")
    if value is None:
        return None
    try:
        length = int(value)
    except ValueError as e:
        raise InvalidArgument(f"Invalid Content-Length: {value!r}") from e
    if length < 0:
        raise InvalidArgument(f"Invalid Content-Length: {value!r}")
    return length


@router.get("/")
def upload_form(handler: PasteHandler = Depends(get_handler)) -> Response:
    """Serve the upload form."""
    return handler.upload_form()


@router.get("/{segment}")
def get_segment(
    segment: str,
    user_agent: Optional[str] = Header(None),
    handler: PasteHandler = Depends(get_handler),
) -> Response:
    """
    Serve a page, a static file or a paste.

    Pastes with a file name are redirected to `/<id>/<file name>`.
    """
    return handler.get(segment, user_agent)


@router.get("/{paste_id}/{file_name}")
def get_named_paste(
    paste_id: str,
    file_name: str,
    user_agent: Optional[str] = Header(None),
    handler: PasteHandler = Depends(get_handler),
) -> Response:
    """Serve a paste. The file name is only used for display."""
    return handler.get_paste(paste_id, user_agent, name_provided=True)


async def _create(request: Request, handler: PasteHandler, file_name: Optional[str]) -> Response:
    # Nothing is stored unless the whole body has been read.
    data = await read_body(
        request.stream(),
        handler.storage.max_data_size(),
        _content_length(request),
    )
    expires = request.query_params.get("expires")
    return await run_in_threadpool(handler.create_paste, data, file_name, expires)


# POST and PUT are the same thing here: some command line clients send
# uploads with one, some with the other.
@router.api_route("/", methods=["POST", "PUT"], status_code=201)
async def create_paste(request: Request, handler: PasteHandler = Depends(get_handler)) -> Response:
    """
    Create a new paste from the request body.

    Query args: `expires=never` or `expires=<unix timestamp>`.
    """
    return await _create(request, handler, None)


@router.api_route("/{file_name}", methods=["POST", "PUT"], status_code=201)
async def create_named_paste(
    file_name: str,
    request: Request,
    handler: PasteHandler = Depends(get_handler),
) -> Response:
    """Create a new paste with a file name."""
    return await _create(request, handler, file_name)


@router.api_route("/{file_name}/{rest:path}", methods=["POST", "PUT"], status_code=201)
async def create_named_paste_nested(
    file_name: str,
    rest: str,
    request: Request,
    handler: PasteHandler = Depends(get_handler),
) -> Response:
    """Only the first path segment is taken as the file name."""
    return await _create(request, handler, file_name)


@router.delete("/")
def delete_without_id() -> Response:
    raise NoIdSegment()


@router.delete("/{paste_id}")
def delete_paste(paste_id: str, handler: PasteHandler = Depends(get_handler)) -> Response:
    """Delete a paste. Deleting an unknown paste is not an error."""
    return handler.remove_paste(paste_id)


@router.delete("/{paste_id}/{rest:path}")
def delete_named_paste(paste_id: str, rest: str, handler: PasteHandler = Depends(get_handler)) -> Response:
    """Delete a paste addressed by its `/<id>/<file name>` URL."""
    return handler.remove_paste(paste_id)
