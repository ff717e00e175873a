"""Application of a single line-level format to one sub-range."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..core.config import FormattingConfig
from ..core.formats import (
    FormatKind,
    ListKind,
    clamp_indent,
    normalize_header,
    normalize_indent_delta,
    normalize_line_height,
    parse_list_kind,
)
from ..core.ranges import Range, SubRange
from ..core.tree import NodeKind
from ..editor import ChangeEvent, Editor, Source

logger = logging.getLogger(__name__)


class FormatApplier:
    """
    Applies one line-level format to the lines of one sub-range.

    Each call measures its sub-range again right before mutating, so a
    sequence of calls stays correct even when earlier calls changed the
    document length (for example by inserting list markers). A sub-range
    that no longer covers anything is skipped without error.

    Examples:
        >>> applier = FormatApplier(editor)
        >>> applier.apply(SubRange(0, 10), FormatKind.HEADER, 2)
    """

    def __init__(self, editor: Editor, config: Optional[FormattingConfig] = None) -> None:
        self.editor = editor
        self.tree = editor.tree
        self.config = config or editor.config.formatting

    def apply(
        self,
        sub_range: SubRange,
        kind: FormatKind,
        value: Any,
        source: Source = Source.USER,
        renumber_following: bool = True,
    ) -> Optional[ChangeEvent]:
        """
        Format every top-level line touched by ``sub_range``.

        When the change can alter list numbering, the ordered items right
        after the last touched line (tables stepped over) are renumbered in
        the same change.

        Args:
            sub_range: Where to apply the format
            kind: Which line format to apply
            value: ListKind (or None to remove), header level (0 removes),
                signed indent delta, or line-height token (None removes)
            source: Origin tag carried by the change event
            renumber_following: Whether to renumber the ordered items that
                follow the sub-range

        Returns:
            Optional[ChangeEvent]: The change scoped to the sub-range, or
            None when the sub-range had gone stale or touched no line
        """
        kind = FormatKind(kind)
        measured = sub_range.remeasure(self.tree)
        if measured is None:
            logger.debug(
                f"Skipping stale sub-range [{sub_range.index}, {sub_range.end})"
            )
            return None

        lines = self._top_level_lines(measured)
        if not lines:
            logger.debug(f"No formattable line in [{measured.index}, {measured.end})")
            return None

        updates = self._updates(lines, kind, value)
        renumber = None
        if renumber_following and kind in (FormatKind.LIST, FormatKind.HEADER):
            renumber = self._following_numbers(lines[-1], updates[-1])
        return self.editor.format_lines(
            lines,
            updates,
            measured,
            {kind.attribute: self._summary_value(kind, value)},
            source=source,
            renumber=renumber,
        )

    def _top_level_lines(self, measured: Range) -> List[int]:
        return [
            line
            for line in self.editor.range_model.lines(measured)
            if self.tree.node(line).parent is None
        ]

    def _updates(self, lines: List[int], kind: FormatKind, value: Any) -> List[Dict[str, Any]]:
        if kind is FormatKind.LIST:
            return self._list_updates(lines, parse_list_kind(value))

        if kind is FormatKind.HEADER:
            level = normalize_header(value, self.config.header_levels)
            update: Dict[str, Any] = {"header": level}
            if level is not None:
                update.update({"list": None, "number": None})
            return [dict(update) for _ in lines]

        if kind is FormatKind.INDENT:
            delta = normalize_indent_delta(value)
            return [
                {
                    "indent": clamp_indent(
                        int(self.tree.node(line).attributes.get("indent", 0)),
                        delta,
                        self.config.max_indent,
                    )
                }
                for line in lines
            ]

        token = normalize_line_height(value, self.config.line_heights)
        return [{"line-height": token} for _ in lines]

    def _list_updates(
        self, lines: List[int], list_kind: Optional[ListKind]
    ) -> List[Dict[str, Any]]:
        if list_kind is None:
            return [{"list": None, "number": None} for _ in lines]

        updates = []
        number = self._preceding_number(lines[0]) if list_kind is ListKind.ORDERED else 0
        for _ in lines:
            update: Dict[str, Any] = {"list": list_kind.value, "header": None, "number": None}
            if list_kind is ListKind.ORDERED:
                number += 1
                update["number"] = number
            updates.append(update)
        return updates

    def _preceding_number(self, line: int) -> int:
        """
        Number of the ordered item right before ``line``, or 0.

        Table regions are stepped over, so numbering resumes after a table
        that interrupted a list.
        """
        previous = self.tree.previous_sibling(line)
        while previous is not None:
            node = self.tree.node(previous)
            if node.kind is NodeKind.PARAGRAPH:
                if node.attributes.get("list") == ListKind.ORDERED.value:
                    return int(node.attributes.get("number") or 1)
                return 0
            if node.kind is not NodeKind.TABLE_REGION:
                return 0
            previous = node.previous_sibling
        return 0

    def _following_numbers(self, line: int, update: Dict[str, Any]) -> List[Tuple[int, int]]:
        """Numbers for the ordered run after ``line`` once ``update`` lands on it."""
        attributes = {**self.tree.node(line).attributes, **update}
        number = 0
        if attributes.get("list") == ListKind.ORDERED.value:
            number = int(attributes.get("number") or 1)

        renumber = []
        top_level = self.tree.top_level()
        for block in top_level[top_level.index(line) + 1 :]:
            node = self.tree.node(block)
            if node.kind is NodeKind.TABLE_REGION:
                continue
            if (
                node.kind is not NodeKind.PARAGRAPH
                or node.attributes.get("list") != ListKind.ORDERED.value
            ):
                break
            number += 1
            if node.attributes.get("number") != number:
                renumber.append((block, number))
        return renumber

    @staticmethod
    def _summary_value(kind: FormatKind, value: Any) -> Any:
        if isinstance(value, ListKind):
            return value.value
        if kind is FormatKind.HEADER and not value:
            return None
        return value
