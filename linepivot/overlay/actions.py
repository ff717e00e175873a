"""Host interfaces for the image overlay and the actions it can run."""

import base64
import binascii
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, Optional, Protocol, Tuple, Union, runtime_checkable
from urllib.parse import unquote_to_bytes

import httpx

from ..core.config import get_config
from ..core.exceptions import OverlayActionError, create_overlay_action_error
from .geometry import Rect

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass
class Element:
    """
    A rendered content node the overlay can bind to.

    Attributes:
        tag: Element tag, e.g. ``"img"``
        src: Source URL of the content
        dataset: ``data-*`` attributes; ``title`` names downloads
        attached: Whether the node is still in the rendered document
    """

    tag: str
    src: str = ""
    dataset: Dict[str, str] = field(default_factory=dict)
    attached: bool = True

    @property
    def title(self) -> str:
        return self.dataset.get("title", "")


@dataclass
class ControlElement:
    """The floating bar shown over an anchor."""

    actions: Tuple[str, ...]
    class_name: str = "ql-image-bar"
    style: Dict[str, str] = field(default_factory=dict)
    attached: bool = False


@dataclass
class PointerEvent:
    """A pointer gesture delivered by the host."""

    target: Any
    type: str = "click"
    default_prevented: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True


@runtime_checkable
class OverlayHost(Protocol):
    """Geometry and DOM surface the overlay needs from the host."""

    def bounding_rect(self, element: Any) -> Rect:
        """Viewport rectangle of an element (the container included)."""
        ...

    def container_rect(self) -> Rect:
        """Viewport rectangle of the container the bar is attached to."""
        ...

    def attach(self, control: ControlElement) -> None:
        """Append the bar to the container."""
        ...

    def detach(self, control: ControlElement) -> None:
        """Remove the bar from the container."""
        ...


class ClipboardWriter(Protocol):
    async def write(self, payload: bytes, mime_type: str) -> None:
        """Write a binary payload to the system clipboard."""
        ...


class DownloadTrigger(Protocol):
    def trigger(self, url: str, filename: str) -> Union[None, Awaitable[None]]:
        """Start a download of ``url`` saved as ``filename``."""
        ...


class Notifier(Protocol):
    def notify(self, error: OverlayActionError) -> None:
        """Tell the user an action failed."""
        ...


class ImageActions:
    """
    Download and copy actions for an image element.

    Every failure, from the network, the clipboard or the download
    primitive, surfaces as an :class:`OverlayActionError`.

    Args:
        clipboard: Host clipboard-write primitive
        downloader: Host download-trigger primitive
        client: HTTP client used to fetch image bytes; one is created per
            copy when omitted
        timeout: Timeout in seconds for the fetch; defaults to the
            configured ``overlay.fetch_timeout``
    """

    def __init__(
        self,
        clipboard: ClipboardWriter,
        downloader: DownloadTrigger,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.clipboard = clipboard
        self.downloader = downloader
        self.client = client
        self.timeout = timeout if timeout is not None else get_config().overlay.fetch_timeout

    async def run(self, action: str, image: Element) -> None:
        if action == "download":
            await self.download(image)
        elif action == "copy":
            await self.copy(image)
        else:
            raise OverlayActionError(f"Unknown overlay action {action!r}", action=action)

    async def download(self, image: Element) -> None:
        """Hand the image URL and title to the host download primitive."""
        url = image.src
        if not url:
            raise create_overlay_action_error("download", url)
        try:
            result = self.downloader.trigger(url, image.title)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            raise create_overlay_action_error("download", url, e) from e
        logger.debug(f"Download triggered for {url}")

    async def copy(self, image: Element) -> None:
        """Fetch the image bytes and write them to the clipboard."""
        url = image.src
        if not url:
            raise create_overlay_action_error("copy", url)

        payload, mime_type = await self._fetch(url)
        try:
            await self.clipboard.write(payload, mime_type)
        except Exception as e:
            raise create_overlay_action_error("copy", url, e) from e
        logger.debug(f"Copied {len(payload)} bytes ({mime_type}) from {url}")

    async def _fetch(self, url: str) -> Tuple[bytes, str]:
        if url[:5].lower() == "data:":
            return self._decode_data_url(url)

        try:
            if self.client is not None:
                response = await self.client.get(url)
            else:
                async with httpx.AsyncClient(
                    timeout=self.timeout, follow_redirects=True
                ) as client:
                    response = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise create_overlay_action_error("copy", url, e) from e

        if not response.is_success:
            raise create_overlay_action_error("copy", url, status_code=response.status_code)
        if not response.content:
            error = create_overlay_action_error("copy", url, status_code=response.status_code)
            error.add_context("reason", "empty response")
            raise error

        content_type = response.headers.get("content-type", DEFAULT_MIME_TYPE)
        mime_type = content_type.split(";")[0].strip() or DEFAULT_MIME_TYPE
        return response.content, mime_type

    @staticmethod
    def _decode_data_url(url: str) -> Tuple[bytes, str]:
        """Decode an inline ``data:[<mime>][;base64],<payload>`` source."""
        header, sep, data = url[5:].partition(",")
        if not sep:
            error = create_overlay_action_error("copy", url[:64])
            error.add_context("reason", "malformed data URL")
            raise error

        params = header.split(";")
        mime_type = params[0].strip().lower() or "text/plain"
        try:
            if params[-1].strip().lower() == "base64":
                payload = base64.b64decode(data, validate=True)
            else:
                payload = unquote_to_bytes(data)
        except binascii.Error as e:
            raise create_overlay_action_error("copy", url[:64], e) from e

        if not payload:
            error = create_overlay_action_error("copy", url[:64])
            error.add_context("reason", "empty response")
            raise error
        return payload, mime_type
