"""Unit tests for the image overlay bar."""

import asyncio

import httpx
import pytest

from linepivot.core.config import EditorConfig, OverlayConfig, set_config
from linepivot.core.exceptions import OverlayActionError
from linepivot.overlay import (
    Element,
    ImageActions,
    OverlayController,
    OverlayState,
    Placement,
    PointerEvent,
    Rect,
    place_bar,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


def _client(status_code=200, content=PNG_BYTES, content_type="image/png"):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code, content=content, headers={"content-type": content_type}
        )

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class GatedDownloader:
    """Download trigger that does not settle until released."""

    def __init__(self) -> None:
        self.gate = asyncio.Event()
        self.requests = []

    async def trigger(self, url: str, filename: str) -> None:
        self.requests.append((url, filename))
        await self.gate.wait()


async def _until_acting(controller: OverlayController) -> None:
    while controller.state is not OverlayState.ACTING:
        await asyncio.sleep(0)


class TestPlacement:
    """Positioning the bar over its anchor."""

    def test_place_bar(self):
        placement = place_bar(Rect(300, 120, 200, 100), Rect(100, 20, 800, 600), 92)
        assert placement == Placement(left=308, top=100)
        assert placement.to_style() == {"left": "308px", "top": "100px"}

    def test_rect_edges(self):
        rect = Rect(10, 20, 30, 40)
        assert (rect.right, rect.bottom) == (40, 60)


class TestOverlayLifecycle:
    """Showing, moving and dismissing the bar."""

    def test_show_positions_and_attaches(self, host, clipboard, downloader, image):
        controller = OverlayController(host, ImageActions(clipboard, downloader))
        binding = controller.show(image, PointerEvent(image))

        assert controller.state is OverlayState.POSITIONED
        assert binding.control in host.attached
        assert binding.control.style == {"left": "308px", "top": "100px"}
        assert binding.control.actions == ("download", "copy")

    def test_ineligible_anchor(self, host, clipboard, downloader):
        controller = OverlayController(host, ImageActions(clipboard, downloader))
        assert controller.show(Element(tag="p")) is None
        assert controller.state is OverlayState.IDLE

    def test_configured_offset_and_actions(self, host, clipboard, downloader, image):
        config = OverlayConfig(bar_offset=50, actions=["copy"])
        controller = OverlayController(host, ImageActions(clipboard, downloader), config=config)
        binding = controller.show(image)

        assert binding.control.style["left"] == "350px"
        assert binding.control.actions == ("copy",)

    def test_show_replaces_previous_binding(self, host, clipboard, downloader, image):
        controller = OverlayController(host, ImageActions(clipboard, downloader))
        first = controller.show(image)
        second = controller.show(Element(tag="img", src="https://images.example.com/b.png"))

        assert not first.is_active
        assert first.control in host.detached
        assert controller.binding is second
        assert controller.state is OverlayState.POSITIONED

    def test_reposition_follows_anchor(self, host, clipboard, downloader, image):
        controller = OverlayController(host, ImageActions(clipboard, downloader))
        binding = controller.show(image)
        host.anchor_rect = Rect(300, 420, 200, 100)

        assert controller.reposition() == Placement(left=308, top=400)
        assert binding.control.style["top"] == "400px"

    def test_reposition_after_detach_dismisses(self, host, clipboard, downloader, image):
        controller = OverlayController(host, ImageActions(clipboard, downloader))
        controller.show(image)
        image.attached = False

        assert controller.reposition() is None
        assert controller.state is OverlayState.IDLE
        assert controller.binding is None

    def test_focus_lost_dismisses(self, host, clipboard, downloader, image):
        controller = OverlayController(host, ImageActions(clipboard, downloader))
        controller.show(image)
        controller.focus_lost()

        assert controller.state is OverlayState.IDLE
        assert controller.transitions[-2:] == [
            (OverlayState.POSITIONED, OverlayState.DISMISSED),
            (OverlayState.DISMISSED, OverlayState.IDLE),
        ]


class TestOverlayActions:
    """Running actions from the bar."""

    def test_copy_writes_clipboard_and_tears_down(self, host, clipboard, downloader, image):
        async def scenario():
            async with _client(content_type="image/png; charset=binary") as client:
                controller = OverlayController(
                    host, ImageActions(clipboard, downloader, client=client)
                )
                binding = controller.show(image)
                event = PointerEvent(binding.control)
                result = await controller.perform("copy", event)
                return controller, binding, event, result

        controller, binding, event, result = asyncio.run(scenario())

        assert result.succeeded
        assert event.default_prevented
        assert clipboard.writes == [(PNG_BYTES, "image/png")]
        assert controller.state is OverlayState.IDLE
        assert controller.binding is None
        assert not binding.is_active
        assert binding.control in host.detached

    def test_copy_failure_is_notified_and_tears_down(
        self, host, clipboard, downloader, notifier, image
    ):
        async def scenario():
            async with _client(status_code=404, content=b"missing") as client:
                controller = OverlayController(
                    host, ImageActions(clipboard, downloader, client=client), notifier
                )
                controller.show(image)
                result = await controller.perform("copy", PointerEvent(image))
                return controller, result

        controller, result = asyncio.run(scenario())

        assert not result.succeeded
        assert isinstance(result.error, OverlayActionError)
        assert [error.message for error in notifier.errors] == ["Copy image failed"]
        assert notifier.errors[0].context["status_code"] == 404
        assert clipboard.writes == []
        assert controller.state is OverlayState.IDLE
        assert controller.binding is None
        assert [new for _, new in controller.transitions] == [
            OverlayState.POSITIONED,
            OverlayState.ACTING,
            OverlayState.DISMISSED,
            OverlayState.IDLE,
        ]

    def test_empty_response_fails(self, host, clipboard, downloader, notifier, image):
        async def scenario():
            async with _client(content=b"") as client:
                controller = OverlayController(
                    host, ImageActions(clipboard, downloader, client=client), notifier
                )
                controller.show(image)
                return await controller.perform("copy")

        result = asyncio.run(scenario())
        assert result.error.context["reason"] == "empty response"

    def test_network_error_fails(self, host, clipboard, downloader, notifier, image):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async def scenario():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                controller = OverlayController(
                    host, ImageActions(clipboard, downloader, client=client), notifier
                )
                controller.show(image)
                return controller, await controller.perform("copy")

        controller, result = asyncio.run(scenario())
        assert result.error.context["original_error_type"] == "ConnectError"
        assert controller.state is OverlayState.IDLE

    def test_clipboard_failure(self, host, failing_clipboard, downloader, notifier, image):
        clipboard = failing_clipboard

        async def scenario():
            async with _client() as client:
                controller = OverlayController(
                    host, ImageActions(clipboard, downloader, client=client), notifier
                )
                controller.show(image)
                return await controller.perform("copy")

        result = asyncio.run(scenario())
        assert result.error.context["original_error_type"] == "PermissionError"
        assert len(notifier.errors) == 1

    @pytest.mark.parametrize(
        "src", ["http://[::1/broken.png", "https://images.example.com/a\x00b.png"]
    )
    def test_invalid_url_is_notified_and_tears_down(
        self, host, clipboard, downloader, notifier, src
    ):
        controller = OverlayController(host, ImageActions(clipboard, downloader), notifier)
        controller.show(Element(tag="img", src=src))

        result = asyncio.run(controller.perform("copy"))

        assert not result.succeeded
        assert result.error.context["original_error_type"] == "InvalidURL"
        assert [error.message for error in notifier.errors] == ["Copy image failed"]
        assert controller.state is OverlayState.IDLE
        assert controller.binding is None

    def test_unexpected_client_error_stays_at_action_boundary(
        self, host, clipboard, downloader, notifier, image
    ):
        def handler(request):
            raise RuntimeError("transport exploded")

        async def scenario():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                controller = OverlayController(
                    host, ImageActions(clipboard, downloader, client=client), notifier
                )
                controller.show(image)
                return controller, await controller.perform("copy")

        controller, result = asyncio.run(scenario())

        assert isinstance(result.error, OverlayActionError)
        assert result.error.context["original_error_type"] == "RuntimeError"
        assert len(notifier.errors) == 1
        assert controller.state is OverlayState.IDLE

    def test_copy_data_url(self, host, clipboard, downloader, notifier):
        controller = OverlayController(host, ImageActions(clipboard, downloader), notifier)
        controller.show(Element(tag="img", src="data:image/png;base64,iVBORw0KGgo="))

        result = asyncio.run(controller.perform("copy"))

        assert result.succeeded
        assert clipboard.writes == [(b"\x89PNG\r\n\x1a\n", "image/png")]
        assert notifier.errors == []

    def test_copy_percent_encoded_data_url(self, clipboard, downloader):
        actions = ImageActions(clipboard, downloader)
        asyncio.run(actions.copy(Element(tag="img", src="data:image/svg+xml,%3Csvg%2F%3E")))

        assert clipboard.writes == [(b"<svg/>", "image/svg+xml")]

    @pytest.mark.parametrize(
        "src,reason",
        [
            ("data:image/png;base64", "malformed data URL"),
            ("data:image/png;base64,", "empty response"),
        ],
    )
    def test_bad_data_url_fails(self, clipboard, downloader, src, reason):
        actions = ImageActions(clipboard, downloader)
        with pytest.raises(OverlayActionError) as exc_info:
            asyncio.run(actions.copy(Element(tag="img", src=src)))

        assert exc_info.value.context["reason"] == reason
        assert clipboard.writes == []

    def test_invalid_base64_data_url_fails(self, clipboard, downloader):
        actions = ImageActions(clipboard, downloader)
        with pytest.raises(OverlayActionError) as exc_info:
            asyncio.run(actions.copy(Element(tag="img", src="data:image/png;base64,@@@")))

        assert exc_info.value.message == "Copy image failed"

    def test_configured_fetch_timeout_reaches_client(
        self, monkeypatch, clipboard, downloader, image
    ):
        set_config(EditorConfig(overlay=OverlayConfig(fetch_timeout=2.5)))
        created = []
        real_client = httpx.AsyncClient

        def handler(request):
            return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})

        def recording_client(**kwargs):
            created.append(kwargs)
            return real_client(transport=httpx.MockTransport(handler), **kwargs)

        monkeypatch.setattr(httpx, "AsyncClient", recording_client)
        actions = ImageActions(clipboard, downloader)
        asyncio.run(actions.copy(image))

        assert actions.timeout == 2.5
        assert created[0]["timeout"] == 2.5
        assert created[0]["follow_redirects"] is True
        assert clipboard.writes == [(PNG_BYTES, "image/png")]

    def test_explicit_timeout_wins_over_config(self, clipboard, downloader):
        set_config(EditorConfig(overlay=OverlayConfig(fetch_timeout=2.5)))
        assert ImageActions(clipboard, downloader, timeout=4.0).timeout == 4.0

    def test_download_uses_title(self, host, clipboard, downloader, image):
        controller = OverlayController(host, ImageActions(clipboard, downloader))
        controller.show(image)
        result = asyncio.run(controller.perform("download"))

        assert result.succeeded
        assert downloader.requests == [("https://images.example.com/chart.png", "chart.png")]
        assert controller.state is OverlayState.IDLE

    def test_download_without_source_fails(self, host, clipboard, downloader, notifier):
        controller = OverlayController(host, ImageActions(clipboard, downloader), notifier)
        controller.show(Element(tag="img"))
        result = asyncio.run(controller.perform("download"))

        assert not result.succeeded
        assert notifier.errors[0].message == "Download image failed"
        assert controller.binding is None

    def test_gesture_without_binding_is_ignored(self, host, clipboard, downloader):
        controller = OverlayController(host, ImageActions(clipboard, downloader))
        event = PointerEvent(None)
        result = asyncio.run(controller.perform("copy", event))

        assert result.ignored
        assert event.default_prevented
        assert controller.transitions == []

    def test_action_not_on_bar_is_ignored(self, host, clipboard, downloader, image):
        config = OverlayConfig(actions=["download"])
        controller = OverlayController(host, ImageActions(clipboard, downloader), config=config)
        controller.show(image)
        result = asyncio.run(controller.perform("copy"))

        assert result.ignored
        assert controller.state is OverlayState.POSITIONED


class TestOverlayConcurrency:
    """Gestures and host events arriving while an action is in flight."""

    def test_second_gesture_while_acting_is_ignored(self, host, clipboard, image):
        downloader = GatedDownloader()

        async def scenario():
            controller = OverlayController(host, ImageActions(clipboard, downloader))
            controller.show(image)
            first = asyncio.ensure_future(controller.perform("download"))
            await _until_acting(controller)

            second = await controller.perform("download")
            downloader.gate.set()
            return controller, await first, second

        controller, first, second = asyncio.run(scenario())

        assert first.succeeded
        assert second.ignored
        assert len(downloader.requests) == 1
        assert controller.state is OverlayState.IDLE

    def test_anchor_detached_while_acting(self, host, clipboard, image):
        downloader = GatedDownloader()

        async def scenario():
            controller = OverlayController(host, ImageActions(clipboard, downloader))
            binding = controller.show(image)
            pending = asyncio.ensure_future(controller.perform("download"))
            await _until_acting(controller)

            image.attached = False
            controller.anchor_detached(image)
            dismissed_state = controller.state
            downloader.gate.set()
            return controller, binding, dismissed_state, await pending

        controller, binding, dismissed_state, result = asyncio.run(scenario())

        assert dismissed_state is OverlayState.IDLE
        assert result.succeeded
        assert controller.binding is None
        assert host.detached == [binding.control]
        assert controller.transitions.count((OverlayState.DISMISSED, OverlayState.IDLE)) == 1

    def test_settlement_leaves_newer_binding_alone(self, host, clipboard, image):
        downloader = GatedDownloader()
        other = Element(tag="img", src="https://images.example.com/other.png")

        async def scenario():
            controller = OverlayController(host, ImageActions(clipboard, downloader))
            controller.show(image)
            pending = asyncio.ensure_future(controller.perform("download"))
            await _until_acting(controller)

            newer = controller.show(other)
            downloader.gate.set()
            await pending
            return controller, newer

        controller, newer = asyncio.run(scenario())

        assert controller.binding is newer
        assert newer.is_active
        assert controller.state is OverlayState.POSITIONED


@pytest.mark.parametrize("action", ["download", "copy"])
def test_missing_source_error_message(action, clipboard, downloader):
    actions = ImageActions(clipboard, downloader)
    with pytest.raises(OverlayActionError) as exc_info:
        asyncio.run(actions.run(action, Element(tag="img")))
    assert exc_info.value.message == f"{action.capitalize()} image failed"
