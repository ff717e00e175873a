"""Linear ranges over a content tree and their tree-position equivalents."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .exceptions import ValidationError, create_out_of_bounds_error
from .tree import ContentTree, NodeKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Range:
    """
    A selection expressed as an offset and a length over the linear document.

    Attributes:
        index: Non-negative offset of the first selected position
        length: Non-negative number of selected positions; 0 is a caret

    Examples:
        >>> selection = Range(0, 50)
        >>> selection.end
        50
        >>> Range(12, 0).is_caret
        True
    """

    index: int
    length: int = 0

    def __post_init__(self) -> None:
        """Validate range data after initialization."""
        if not isinstance(self.index, int) or isinstance(self.index, bool) or self.index < 0:
            raise ValidationError(
                "index must be a non-negative integer",
                field_name="index",
                expected_type="int",
                actual_value=self.index,
            )
        if not isinstance(self.length, int) or isinstance(self.length, bool) or self.length < 0:
            raise ValidationError(
                "length must be a non-negative integer",
                field_name="length",
                expected_type="int",
                actual_value=self.length,
            )

    @property
    def end(self) -> int:
        return self.index + self.length

    @property
    def is_caret(self) -> bool:
        return self.length == 0

    def overlaps(self, start: int, end: int) -> bool:
        """Whether ``[start, end)`` intersects this range.

        A caret intersects the span that contains its position.
        """
        if self.is_caret:
            return start <= self.index < end
        return start < self.end and self.index < end

    def to_dict(self) -> dict:
        return {"index": self.index, "length": self.length}


@dataclass(frozen=True)
class TreePosition:
    """A leaf node and an offset inside it."""

    leaf_id: int
    offset: int


@dataclass(frozen=True)
class SubRange(Range):
    """
    A range produced by splitting a selection around table regions.

    Besides its offsets, a sub-range remembers what bounds it so it can be
    measured again after earlier sub-ranges have changed the document.

    Attributes:
        after_node: Table region this sub-range starts right after, if any
        before_node: Table region this sub-range ends right before, if any
        measured_at: Document length when the offsets were computed
        caret: Whether this sub-range stands for a caret selection
    """

    after_node: Optional[int] = None
    before_node: Optional[int] = None
    measured_at: Optional[int] = None
    caret: bool = False

    @classmethod
    def from_range(cls, selection: Range, tree: ContentTree) -> "SubRange":
        """Wrap an unsplit selection."""
        return cls(
            selection.index,
            selection.length,
            measured_at=tree.length,
            caret=selection.is_caret,
        )

    def as_range(self) -> Range:
        """The offsets of this sub-range as a plain range."""
        return Range(self.index, self.length)

    def remeasure(self, tree: ContentTree) -> Optional[Range]:
        """
        Recompute this sub-range against the current tree.

        The start follows the end of ``after_node`` and the end follows the
        start of ``before_node``. An unanchored end shifts by however much
        the document grew or shrank since ``measured_at``; an unanchored
        start does not move, since nothing before it has been mutated.

        Returns:
            Optional[Range]: The current range, or None when the sub-range no
            longer covers anything
        """
        start = self.index
        if self.after_node is not None:
            start = _anchor_offset(tree, self.after_node, at_end=True)
            if start is None:
                return None

        if self.before_node is not None:
            end = _anchor_offset(tree, self.before_node, at_end=False)
            if end is None:
                return None
        else:
            delta = tree.length - (self.measured_at if self.measured_at is not None else tree.length)
            end = self.end + delta

        if self.caret and start == end and start <= tree.length:
            return Range(start, 0)
        if end <= start or end > tree.length:
            return None
        return Range(start, end - start)


def _anchor_offset(tree: ContentTree, node_id: int, at_end: bool) -> Optional[int]:
    node = tree.node(node_id)
    if node.detached:
        return None
    start, end = tree.span_of(node_id)
    return end if at_end else start


class RangeModel:
    """
    Converts between linear ranges and tree positions.

    Every call reads the tree as it is now; nothing is cached, so results
    must be used before the next mutation.

    Examples:
        >>> model = RangeModel(tree)
        >>> start, end = model.resolve(Range(0, 5))
        >>> model.materialize(start, end)
        Range(index=0, length=5)
    """

    def __init__(self, tree: ContentTree) -> None:
        self.tree = tree

    def check(self, selection: Range) -> None:
        """
        Ensure a range lies inside the document.

        Raises:
            OutOfBoundsError: If ``index + length`` exceeds the document length
        """
        if selection.end > self.tree.length:
            raise create_out_of_bounds_error(
                selection.index, selection.length, self.tree.length
            )

    def resolve(self, selection: Range) -> Tuple[TreePosition, TreePosition]:
        """
        Map a linear range to start and end tree positions.

        Args:
            selection: Range to resolve

        Returns:
            Tuple[TreePosition, TreePosition]: Start and end positions

        Raises:
            OutOfBoundsError: If the range exceeds the document
        """
        self.check(selection)
        start = TreePosition(*self.tree.locate(selection.index))
        if selection.is_caret:
            return start, start
        end = TreePosition(*self.tree.locate(selection.end, prefer_end=True))
        return start, end

    def materialize(self, start: TreePosition, end: TreePosition) -> Range:
        """Map a pair of tree positions back to a linear range."""
        for position in (start, end):
            leaf = self.tree.node(position.leaf_id)
            if not leaf.is_leaf or not 0 <= position.offset <= leaf.length:
                raise ValidationError(
                    f"Invalid tree position {position}",
                    field_name="position",
                    actual_value=position,
                )
        index = self.tree.offset_of(start.leaf_id) + start.offset
        end_index = self.tree.offset_of(end.leaf_id) + end.offset
        if end_index < index:
            raise ValidationError("End position precedes start position")
        return Range(index, end_index - index)

    def lines(self, selection: Range) -> List[int]:
        """
        Paragraphs touched by a range, in document order.

        A line ``[ls, le)`` is touched by a non-empty range when
        ``ls < end`` and ``le > index``; a caret touches the line that
        contains it.
        """
        self.check(selection)
        if selection.is_caret:
            if selection.index == self.tree.length:
                return []
            line = self.tree.line_at(selection.index)
            return [] if line is None else [line]

        touched = []
        for line, start in self.tree.iter_lines():
            if start >= selection.end:
                break
            if start + self.tree.node(line).length > selection.index:
                touched.append(line)
        return touched

    def top_level_lines(self, selection: Range) -> List[int]:
        """Touched paragraphs that are not table cell lines."""
        return [
            line
            for line in self.lines(selection)
            if self.tree.node(line).parent is None
            and self.tree.kind(line) is NodeKind.PARAGRAPH
        ]
