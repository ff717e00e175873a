"""Rectangles and overlay placement."""

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class Rect:
    """A bounding rectangle in viewport coordinates."""

    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass(frozen=True)
class Placement:
    """Position of the control element inside its container."""

    left: float
    top: float

    def to_style(self) -> Dict[str, str]:
        return {"left": f"{self.left:g}px", "top": f"{self.top:g}px"}


def place_bar(anchor: Rect, container: Rect, bar_offset: float) -> Placement:
    """
    Place the bar at the anchor's top right corner, in container coordinates.

    Both rectangles come from the same viewport, so subtracting the
    container origin gives an offset that stays valid while the container
    scrolls with its content.

    Examples:
        >>> place_bar(Rect(300, 120, 200, 100), Rect(100, 20, 800, 600), 92)
        Placement(left=308, top=100)
    """
    return Placement(
        left=anchor.left + anchor.width - container.left - bar_offset,
        top=anchor.top - container.top,
    )
