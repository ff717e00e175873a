"""Line-level format kinds and value normalization."""

from enum import Enum
from typing import Any, Optional, Sequence

from .exceptions import ValidationError


class FormatKind(str, Enum):
    """Line-level formats a command can apply."""

    LIST = "list"
    HEADER = "header"
    INDENT = "indent"
    LINE_HEIGHT = "line-height"

    @property
    def attribute(self) -> str:
        """Name of the paragraph attribute the format is stored under."""
        return self.value


class ListKind(str, Enum):
    """List marker kinds."""

    ORDERED = "ordered"
    BULLET = "bullet"
    CHECKED = "checked"
    UNCHECKED = "unchecked"

    @property
    def family(self) -> str:
        """Checked and unchecked items belong to the same checklist."""
        return "check" if self in (ListKind.CHECKED, ListKind.UNCHECKED) else self.value


# Text of the marker run used when markers are rendered inline
BULLET_MARKER = "• "
CHECKED_MARKER = "[x] "
UNCHECKED_MARKER = "[ ] "


def marker_text(kind: ListKind, number: Optional[int] = None) -> str:
    """Render the inline marker for a list line."""
    if kind is ListKind.ORDERED:
        return f"{number or 1}. "
    if kind is ListKind.CHECKED:
        return CHECKED_MARKER
    if kind is ListKind.UNCHECKED:
        return UNCHECKED_MARKER
    return BULLET_MARKER


def parse_list_kind(value: Any) -> Optional[ListKind]:
    """
    Normalize a requested list value.

    ``"check"`` is accepted as a request for an unchecked item; ``None``,
    ``False`` and ``""`` mean "remove the list".
    """
    if value is None or value is False or value == "":
        return None
    if isinstance(value, ListKind):
        return value
    if value == "check":
        return ListKind.UNCHECKED
    try:
        return ListKind(value)
    except ValueError:
        raise ValidationError(
            f"Unknown list kind {value!r}",
            field_name="list",
            expected_type="ordered|bullet|check|checked|unchecked",
            actual_value=value,
        ) from None


def resolve_list_value(requested: Any, current: Any) -> Optional[ListKind]:
    """
    Decide the list kind a list command should apply.

    Requesting the kind the selection already carries toggles the list off;
    checked and unchecked items count as the same checklist.

    Examples:
        >>> resolve_list_value("bullet", "bullet") is None
        True
        >>> resolve_list_value("check", None)
        <ListKind.UNCHECKED: 'unchecked'>
        >>> resolve_list_value("ordered", "bullet")
        <ListKind.ORDERED: 'ordered'>
    """
    wanted = parse_list_kind(requested)
    existing = parse_list_kind(current)
    if wanted is not None and existing is not None and wanted.family == existing.family:
        return None
    return wanted


def normalize_header(value: Any, max_level: int) -> Optional[int]:
    """Validate a header level; 0 (or None) removes the heading."""
    if value is None or value is False:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        try:
            value = int(value)
        except (TypeError, ValueError):
            raise ValidationError(
                f"Header level must be an integer, got {value!r}",
                field_name="header",
                expected_type="int",
                actual_value=value,
            ) from None
    if not 0 <= value <= max_level:
        raise ValidationError(
            f"Header level must be between 0 and {max_level}, got {value}",
            field_name="header",
            actual_value=value,
        )
    return value or None


def normalize_indent_delta(value: Any) -> int:
    """Validate a signed indent delta such as ``+1`` or ``"-1"``."""
    try:
        delta = int(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"Indent delta must be an integer, got {value!r}",
            field_name="indent",
            expected_type="int",
            actual_value=value,
        ) from None
    return delta


def clamp_indent(current: int, delta: int, max_indent: int) -> Optional[int]:
    """Apply an indent delta, clamped to ``[0, max_indent]``; 0 becomes None."""
    level = max(0, min(max_indent, current + delta))
    return level or None


def normalize_line_height(value: Any, allowed: Sequence[str]) -> Optional[str]:
    """Validate a line-height token against the allowed set."""
    if value is None or value is False or value == "":
        return None
    token = str(value)
    if token not in allowed:
        raise ValidationError(
            f"Unsupported line height {token!r}",
            field_name="line-height",
            expected_type="|".join(allowed),
            actual_value=token,
        )
    return token
