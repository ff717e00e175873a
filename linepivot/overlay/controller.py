"""Lifecycle of the floating image bar."""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, List, Optional, Tuple

from ..core.config import OverlayConfig, get_config
from ..core.exceptions import OverlayActionError, create_overlay_action_error
from .actions import ControlElement, Element, ImageActions, Notifier, OverlayHost, PointerEvent
from .geometry import Placement, place_bar

logger = logging.getLogger(__name__)


class OverlayState(str, Enum):
    """States of the overlay controller."""

    IDLE = "idle"
    POSITIONED = "positioned"
    ACTING = "acting"
    DISMISSED = "dismissed"


@dataclass
class OverlayBinding:
    """
    Association between an anchor element and the bar shown over it.

    Attributes:
        anchor: Rendered node the bar is bound to
        control: The floating bar
        is_active: False once the binding has been torn down
    """

    anchor: Element
    control: ControlElement
    is_active: bool = True


@dataclass(frozen=True)
class ActionResult:
    """Outcome of an overlay action gesture."""

    action: str
    succeeded: bool
    error: Optional[OverlayActionError] = None
    ignored: bool = False


class OverlayController:
    """
    Shows, moves and tears down the bar bound to an image.

    At most one binding exists per controller, and a controller belongs to
    one editor. An action runs inside a scoped acquisition of the binding
    that always tears it down once the action settles, whether it succeeded
    or failed, so the bar never stays stuck on screen.

    Examples:
        >>> controller = OverlayController(host, ImageActions(clipboard, downloader))
        >>> controller.show(image, PointerEvent(image))
        >>> result = await controller.perform("copy", PointerEvent(button))
        >>> controller.state
        <OverlayState.IDLE: 'idle'>
    """

    def __init__(
        self,
        host: OverlayHost,
        actions: ImageActions,
        notifier: Optional[Notifier] = None,
        config: Optional[OverlayConfig] = None,
    ) -> None:
        self.host = host
        self.actions = actions
        self.notifier = notifier
        self.config = config or get_config().overlay
        self._state = OverlayState.IDLE
        self._binding: Optional[OverlayBinding] = None
        self.transitions: List[Tuple[OverlayState, OverlayState]] = []

    @property
    def state(self) -> OverlayState:
        return self._state

    @property
    def binding(self) -> Optional[OverlayBinding]:
        return self._binding

    def is_eligible(self, anchor: Element) -> bool:
        return (
            isinstance(anchor, Element)
            and anchor.attached
            and anchor.tag.lower() in self.config.eligible_tags
        )

    def show(
        self, anchor: Element, event: Optional[PointerEvent] = None
    ) -> Optional[OverlayBinding]:
        """
        Bind the bar to ``anchor`` in response to a pointer gesture.

        Any existing binding is dismissed first.

        Returns:
            Optional[OverlayBinding]: The new binding, or None when the
            anchor is not eligible
        """
        if not self.is_eligible(anchor):
            return None
        if self._binding is not None:
            self.dismiss("replaced")

        binding = OverlayBinding(
            anchor=anchor, control=ControlElement(actions=tuple(self.config.actions))
        )
        self._binding = binding
        self._position(binding)
        self.host.attach(binding.control)
        binding.control.attached = True
        self._transition(OverlayState.POSITIONED)
        logger.debug(f"Overlay bound to {anchor.tag} {anchor.src!r}")
        return binding

    def reposition(self) -> Optional[Placement]:
        """Follow the anchor after the host reports a resize or scroll."""
        binding = self._binding
        if binding is None:
            return None
        if not binding.anchor.attached:
            self.anchor_detached(binding.anchor)
            return None
        return self._position(binding)

    async def perform(self, action: str, event: Optional[PointerEvent] = None) -> ActionResult:
        """
        Run an action gesture from the bar.

        The gesture's default behavior is prevented right away. Gestures
        arriving while no binding is positioned (including while another
        action is in flight) are ignored. Failures are reported through the
        notifier and returned, never raised.
        """
        if event is not None:
            event.prevent_default()

        binding = self._binding
        if binding is None or self._state is not OverlayState.POSITIONED:
            logger.debug(f"Ignoring {action!r} gesture in state {self._state.value}")
            return ActionResult(action, succeeded=False, ignored=True)
        if action not in binding.control.actions:
            logger.debug(f"Ignoring unknown overlay action {action!r}")
            return ActionResult(action, succeeded=False, ignored=True)

        async with self._acting(binding):
            try:
                await self.actions.run(action, binding.anchor)
            except OverlayActionError as error:
                return self._report(action, error)
            except Exception as e:
                return self._report(
                    action, create_overlay_action_error(action, binding.anchor.src, e)
                )
        return ActionResult(action, succeeded=True)

    def _report(self, action: str, error: OverlayActionError) -> ActionResult:
        logger.warning(f"Overlay action failed: {error.message}")
        if self.notifier is not None:
            self.notifier.notify(error)
        return ActionResult(action, succeeded=False, error=error)

    def dismiss(self, reason: str = "dismissed") -> None:
        """Tear down the current binding, if any."""
        if self._binding is not None:
            self._teardown(self._binding, reason)

    def anchor_detached(self, anchor: Element) -> None:
        """Host notification that a rendered node left the document."""
        if self._binding is not None and self._binding.anchor is anchor:
            self.dismiss("anchor-detached")

    def focus_lost(self) -> None:
        """Host notification that focus or selection moved away."""
        self.dismiss("focus-lost")

    @asynccontextmanager
    async def _acting(self, binding: OverlayBinding) -> AsyncIterator[OverlayBinding]:
        self._transition(OverlayState.ACTING)
        try:
            yield binding
        finally:
            self._teardown(binding, "settled")

    def _position(self, binding: OverlayBinding) -> Placement:
        placement = place_bar(
            self.host.bounding_rect(binding.anchor),
            self.host.container_rect(),
            self.config.bar_offset,
        )
        binding.control.style.update(placement.to_style())
        return placement

    def _teardown(self, binding: OverlayBinding, reason: str) -> None:
        if binding.control.attached:
            self.host.detach(binding.control)
            binding.control.attached = False
        binding.is_active = False

        # A settlement after an external dismissal must not touch a newer binding
        if binding is not self._binding:
            return
        self._binding = None
        self._transition(OverlayState.DISMISSED)
        self._transition(OverlayState.IDLE)
        logger.debug(f"Overlay torn down ({reason})")

    def _transition(self, state: OverlayState) -> None:
        self.transitions.append((self._state, state))
        self._state = state
