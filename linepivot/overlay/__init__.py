"""Floating image bar: placement, actions and lifecycle."""

from .actions import (
    ClipboardWriter,
    ControlElement,
    DownloadTrigger,
    Element,
    ImageActions,
    Notifier,
    OverlayHost,
    PointerEvent,
)
from .controller import ActionResult, OverlayBinding, OverlayController, OverlayState
from .geometry import Placement, Rect, place_bar

__all__ = [
    "ActionResult",
    "ClipboardWriter",
    "ControlElement",
    "DownloadTrigger",
    "Element",
    "ImageActions",
    "Notifier",
    "OverlayBinding",
    "OverlayController",
    "OverlayHost",
    "OverlayState",
    "Placement",
    "PointerEvent",
    "Rect",
    "place_bar",
]
