"""
Paste request handling.

`PasteHandler` maps requests onto storage operations: rendering pages,
serving static files, fetching, creating and removing pastes. It knows
nothing about routing; see `pastebin.routes.pastes` for that.
"""
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional, Union
from urllib.parse import quote, urlsplit

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape
from starlette.responses import FileResponse, HTMLResponse, RedirectResponse, Response

from pastebin import mime
from pastebin.database import PasteStorage
from pastebin.errors import (
    IdNotFound,
    InvalidArgument,
    NoIdSegment,
    TemplateRenderError,
    UrlError,
)

logger = logging.getLogger(__name__)

# User agents containing any of these are treated as web browsers.
BROWSER_SIGNATURES = ("Gecko/", "AppleWebKit/", "Opera/", "Trident/", "Chrome/")

# Pages rendered from templates, by URL segment.
PAGES = {
    "paste.sh": ("paste.sh", "text/plain"),
    "readme": ("readme.html", "text/html"),
}


def create_templates(directory: Union[str, Path]) -> Environment:
    """Jinja2 environment with HTML escaping for `.html` templates."""
    return Environment(
        loader=FileSystemLoader(str(directory)),
        autoescape=select_autoescape(["html"]),
    )


def normalize_url_prefix(url_prefix: str) -> str:
    """Make sure there is exactly one trailing slash."""
    return url_prefix.rstrip("/") + "/"


def is_browser(user_agent: Optional[str], browsers: Iterable[str] = BROWSER_SIGNATURES) -> bool:
    """
    Checks if a request has been made from a known browser as opposed to a
    command line client (like wget or curl).
    """
    if not user_agent:
        return False
    return any(browser in user_agent for browser in browsers)


def parse_expiry(
    value: Optional[str],
    default_ttl: timedelta,
    now: Optional[datetime] = None,
) -> Optional[datetime]:
    """
    Compute expiry time from the `expires` query argument.

    Args:
        value: "never", a Unix timestamp, or None for the default
        default_ttl: Lifetime applied when no value is given
        now: Current time (defaults to now, UTC)

    Returns:
        Expiry time in UTC, or None if the paste never expires

    Raises:
        InvalidArgument: If value is neither "never" nor an integer
    """
    if value is None:
        now = now or datetime.now(timezone.utc)
        return now + default_ttl
    if value == "never":
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (ValueError, OverflowError, OSError) as e:
        raise InvalidArgument(f"Invalid value for 'expires': {value!r}") from e


class PasteHandler:
    """Handles paste requests on top of a storage backend."""

    def __init__(
        self,
        storage: PasteStorage,
        templates: Environment,
        url_prefix: str,
        default_ttl: timedelta,
        static_dir: Union[str, Path],
        browsers: Iterable[str] = BROWSER_SIGNATURES,
    ):
        self.storage = storage
        self.templates = templates
        self.url_prefix = normalize_url_prefix(url_prefix)
        self.default_ttl = default_ttl
        self.static_dir = Path(static_dir).resolve()
        self.browsers = tuple(browsers)

    def render_template(self, name: str, media_type: str = "text/html", **context) -> Response:
        try:
            content = self.templates.get_template(name).render(**context)
        except TemplateError as e:
            logger.error(f"Failed to render template {name}: {e}")
            raise TemplateRenderError(f"Failed to render {name}: {e}") from e
        if media_type == "text/html":
            return HTMLResponse(content)
        return Response(content, media_type=media_type)

    def upload_form(self) -> Response:
        return self.render_template("upload.html", prefix=self.url_prefix)

    def static_file(self, file_name: str) -> Optional[Path]:
        """Path of a static file, if one with this name exists."""
        path = (self.static_dir / file_name).resolve()
        # Sub-directories are not supported.
        if path.parent != self.static_dir or not path.is_file():
            return None
        return path

    def serve_static(self, path: Path) -> Response:
        return FileResponse(path, media_type=mime.file_content_type(path))

    def paste_url(self, str_id: str, file_name: Optional[str] = None) -> str:
        url = f"{self.url_prefix}{str_id}"
        if file_name:
            url = f"{url}/{quote(file_name, safe='')}"
        try:
            # Accessing the port validates it.
            urlsplit(url).port
        except ValueError as e:
            raise UrlError(f"Can't build URL {url!r}: {e}") from e
        return url

    def get(self, segment: str, user_agent: Optional[str] = None) -> Response:
        """
        Handles `GET /<segment>`.

        The segment is a page name, a static file name or a paste ID, tried
        in this order.
        """
        if segment in PAGES:
            template, media_type = PAGES[segment]
            return self.render_template(template, media_type, prefix=self.url_prefix)
        path = self.static_file(segment)
        if path is not None:
            return self.serve_static(path)
        return self.get_paste(segment, user_agent, name_provided=False)

    def get_paste(self, str_id: str, user_agent: Optional[str], name_provided: bool) -> Response:
        """
        Loads a paste from the storage.

        Pastes that have a file name are redirected to `/<id>/<file name>`
        first, so browsers save them under that name.
        """
        paste_id = self.storage.codec.decode(str_id)
        if not name_provided:
            file_name = self.storage.get_file_name(paste_id)
            if file_name is not None:
                return RedirectResponse(self.paste_url(str_id, file_name), status_code=301)

        paste = self.storage.load(paste_id)
        if paste is None:
            raise IdNotFound(str_id)

        if mime.is_text(paste.mime_type) and is_browser(user_agent, self.browsers):
            try:
                text = paste.data.decode("utf-8")
            except UnicodeDecodeError:
                logger.debug(f"Paste {str_id} is not valid UTF-8, serving it raw")
            else:
                return self.render_template(
                    "show.html",
                    id=str_id,
                    mime=paste.mime_type,
                    file_name=paste.file_name,
                    data=text,
                    prefix=self.url_prefix,
                )
        return Response(paste.data, media_type=mime.to_content_type(paste.mime_type))

    def create_paste(
        self,
        data: bytes,
        file_name: Optional[str] = None,
        expires: Optional[str] = None,
    ) -> Response:
        """
        Stores an uploaded paste.

        Returns:
            `201 Created` with the paste URL on a line of its own
        """
        logger.debug(f"File name: {file_name}")
        mime_type = mime.resolve(file_name, data)
        best_before = parse_expiry(expires, self.default_ttl)
        paste_id = self.storage.store(data, file_name, mime_type, best_before)
        str_id = self.storage.codec.encode(paste_id)
        logger.debug(f"Generated id: {str_id}")
        return Response(
            f"{self.url_prefix}{str_id}\n",
            status_code=201,
            media_type="text/plain",
        )

    def remove_paste(self, str_id: Optional[str]) -> Response:
        if not str_id:
            raise NoIdSegment()
        self.storage.remove(self.storage.codec.decode(str_id))
        return Response(status_code=200)
