"""In-process editing host: selection, mutation primitives and change events."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .core.config import EditorConfig, get_config
from .core.exceptions import ValidationError
from .core.formats import ListKind, marker_text
from .core.ranges import Range, RangeModel
from .core.tree import ContentTree

logger = logging.getLogger(__name__)


class Source(str, Enum):
    """Origin of a change. Silent changes do not notify selection listeners."""

    USER = "user"
    API = "api"
    SILENT = "silent"


@dataclass(frozen=True)
class ChangeEvent:
    """
    Notification emitted after a mutation.

    Attributes:
        index: Start of the changed span
        length: Length of the changed span after the mutation
        attributes: What changed, e.g. ``{"list": "ordered"}`` or
            ``{"insert": "text"}``
        source: Origin of the change
        lines: Paragraphs whose formats were updated
    """

    index: int
    length: int
    attributes: Dict[str, Any]
    source: Source = Source.USER
    lines: Tuple[int, ...] = field(default_factory=tuple)


ChangeListener = Callable[[ChangeEvent], None]
SelectionListener = Callable[[Range, Source], None]


class Editor:
    """
    Editing host wrapping a content tree.

    The editor owns the current selection, performs every tree mutation the
    formatting core asks for and notifies listeners (history, rendering)
    with change events scoped to the span that actually changed.

    Examples:
        >>> editor = Editor(tree)
        >>> editor.on_change(lambda event: print(event.index, event.length))
        >>> editor.set_selection(0, 10)
    """

    def __init__(
        self, tree: Optional[ContentTree] = None, config: Optional[EditorConfig] = None
    ) -> None:
        self.tree = tree if tree is not None else ContentTree()
        self.config = config or get_config()
        self.range_model = RangeModel(self.tree)
        self._selection: Optional[Range] = None
        self._change_listeners: List[ChangeListener] = []
        self._selection_listeners: List[SelectionListener] = []

    @property
    def inline_markers(self) -> bool:
        return self.config.formatting.marker_style == "inline"

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._change_listeners.append(listener)
        return lambda: self._change_listeners.remove(listener)

    def on_selection_change(self, listener: SelectionListener) -> Callable[[], None]:
        """Register a selection listener; returns a function that removes it."""
        self._selection_listeners.append(listener)
        return lambda: self._selection_listeners.remove(listener)

    def _emit(self, event: ChangeEvent) -> None:
        logger.debug(
            f"Change [{event.index}, {event.index + event.length}) "
            f"{event.attributes} from {event.source.value}"
        )
        for listener in list(self._change_listeners):
            listener(event)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def get_selection(self) -> Optional[Range]:
        return self._selection

    def set_selection(
        self, index: int, length: int = 0, source: Source = Source.API
    ) -> Range:
        """
        Move the selection.

        Raises:
            OutOfBoundsError: If the range exceeds the document
        """
        selection = Range(index, length)
        self.range_model.check(selection)
        self._selection = selection
        if source is not Source.SILENT:
            for listener in list(self._selection_listeners):
                listener(selection, source)
        return selection

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_lines(self, index: int, length: int = 0) -> List[int]:
        """Paragraph ids touched by a range, table cell lines included."""
        return self.range_model.lines(Range(index, length))

    def get_format(self, index: int, length: int = 0) -> Dict[str, Any]:
        """
        Line formats shared by every top-level line in the range.

        Table cell lines are ignored since they never carry line formats.
        """
        lines = self.range_model.top_level_lines(Range(index, length))
        if not lines:
            return {}
        shared = dict(self.tree.node(lines[0]).attributes)
        for line in lines[1:]:
            attributes = self.tree.node(line).attributes
            shared = {
                name: value
                for name, value in shared.items()
                if attributes.get(name) == value
            }
        shared.pop("number", None)
        return shared

    # ------------------------------------------------------------------
    # Mutation primitives
    # ------------------------------------------------------------------

    def format_lines(
        self,
        lines: Sequence[int],
        updates: Sequence[Mapping[str, Any]],
        span: Range,
        attributes: Mapping[str, Any],
        source: Source = Source.USER,
        renumber: Optional[Sequence[Tuple[int, int]]] = None,
    ) -> ChangeEvent:
        """
        Update line attributes and emit one change scoped to ``span``.

        Args:
            lines: Paragraphs to update
            updates: Attribute updates per paragraph; ``None`` values clear
            span: Range the caller is formatting
            attributes: Summary of the format applied, carried by the event
            source: Origin of the change
            renumber: ``(line, number)`` pairs for ordered items after the
                span whose numbers follow from this change

        Returns:
            ChangeEvent: The emitted event; its length accounts for any
            marker text added or removed inside the span
        """
        if len(lines) != len(updates):
            raise ValidationError("Each line needs exactly one attribute update")

        before = self.tree.length
        for line, update in zip(lines, updates):
            for name, value in update.items():
                self.tree.set_line_attribute(line, name, value)
        if self.inline_markers:
            self._sync_markers(lines)
        length = max(0, span.length + self.tree.length - before)

        renumbered = []
        for line, number in renumber or ():
            self.tree.set_line_attribute(line, "number", number)
            renumbered.append(line)
        if self.inline_markers and renumbered:
            self._sync_markers(renumbered)

        event = ChangeEvent(
            index=span.index,
            length=length,
            attributes=dict(attributes),
            source=source,
            lines=tuple(lines) + tuple(renumbered),
        )
        self._emit(event)
        return event

    def insert_text(self, index: int, text: str, source: Source = Source.USER) -> ChangeEvent:
        """Insert text (line breaks split lines) and emit a change."""
        self.range_model.check(Range(index))
        before = self.tree.length
        self.tree.insert_text(index, text)
        if self.inline_markers:
            self._sync_markers()
        event = ChangeEvent(index, self.tree.length - before, {"insert": text}, source)
        self._emit(event)
        return event

    def insert_embed(
        self, index: int, embed_kind: str, value: Any = True, source: Source = Source.USER
    ) -> ChangeEvent:
        """Insert an inline embed inside a line and emit a change."""
        self.range_model.check(Range(index))
        self.tree.insert_embed(index, embed_kind, value)
        event = ChangeEvent(index, 1, {"insert": {embed_kind: value}}, source)
        self._emit(event)
        return event

    def insert_block_embed(
        self, index: int, embed_kind: str, value: Any = True, source: Source = Source.USER
    ) -> ChangeEvent:
        """Insert a top-level block embed at a line boundary and emit a change."""
        self.range_model.check(Range(index))
        self.tree.insert_block_embed(index, embed_kind, value)
        event = ChangeEvent(index, 1, {"insert": {embed_kind: value}}, source)
        self._emit(event)
        return event

    def _sync_markers(self, lines: Optional[Sequence[int]] = None) -> None:
        """Make each line's leading marker run match its list attribute."""
        if lines is None:
            lines = [
                line for line, _ in self.tree.iter_lines()
                if self.tree.node(line).parent is None
            ]
        for line in lines:
            node = self.tree.node(line)
            first = self.tree.node(node.children[0])
            marker = first.id if first.is_marker else None

            list_value = node.attributes.get("list")
            wanted = (
                marker_text(ListKind(list_value), node.attributes.get("number"))
                if list_value
                else None
            )

            if wanted is None and marker is not None:
                self.tree.remove_node(marker)
            elif wanted is not None and marker is None:
                self.tree.insert_run(line, 0, wanted, {"marker": True})
            elif wanted is not None and first.text != wanted:
                self.tree.set_run_text(marker, wanted)

    def lines_summary(self) -> List[Dict[str, Any]]:
        """Every line with its offset, text and formats, for display and export."""
        summary = []
        for line, start in self.tree.iter_lines():
            node = self.tree.node(line)
            summary.append(
                {
                    "line": line,
                    "start": start,
                    "in_table": self.tree.enclosing_table(line) is not None,
                    "text": self.tree.line_text(line, include_markers=False),
                    "attributes": dict(node.attributes),
                }
            )
        return summary
