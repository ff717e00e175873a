"""Arena-backed content tree for block-structured documents.

Nodes are stored in a flat list and refer to each other by integer id.
Parents own their children through the ``children`` id list; children keep
non-owning ``parent`` and ``previous_sibling`` ids for upward and leftward
traversal.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from .exceptions import (
    OutOfBoundsError,
    RegionIntegrityError,
    ValidationError,
    create_out_of_bounds_error,
)

logger = logging.getLogger(__name__)

LINE_BREAK = "\n"
EMBED_PLACEHOLDER = "￼"


class NodeKind(str, Enum):
    """Kinds of node that can appear in a content tree."""

    PARAGRAPH = "paragraph"
    TABLE_REGION = "table-region"
    TABLE_ROW = "table-row"
    TABLE_CELL = "table-cell"
    INLINE_RUN = "inline-run"
    EMBED = "embed"


LEAF_KINDS = frozenset({NodeKind.INLINE_RUN, NodeKind.EMBED})

# Required child kind for each table container
TABLE_CHILD_KINDS = {
    NodeKind.TABLE_REGION: NodeKind.TABLE_ROW,
    NodeKind.TABLE_ROW: NodeKind.TABLE_CELL,
    NodeKind.TABLE_CELL: NodeKind.PARAGRAPH,
}


@dataclass
class Node:
    """
    A single node of the content tree.

    Attributes:
        id: Arena index of the node
        kind: What the node represents
        length: Cached number of linear positions the node occupies
        parent: Id of the owning node, None for top-level blocks
        previous_sibling: Id of the sibling immediately to the left
        children: Ordered ids of owned child nodes
        text: Text of an inline run (empty for other kinds)
        attributes: Line formats for paragraphs, embed kind/value for embeds,
            ``marker`` flag for list-marker runs
        detached: Whether the node has been removed from the tree
    """

    id: int
    kind: NodeKind
    length: int = 0
    parent: Optional[int] = None
    previous_sibling: Optional[int] = None
    children: List[int] = field(default_factory=list)
    text: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)
    detached: bool = False

    @property
    def is_leaf(self) -> bool:
        return self.kind in LEAF_KINDS

    @property
    def is_line_break(self) -> bool:
        return self.kind is NodeKind.INLINE_RUN and self.text == LINE_BREAK

    @property
    def is_marker(self) -> bool:
        return bool(self.attributes.get("marker"))


class ContentTree:
    """
    Ordered forest of block nodes with linear addressing.

    Every paragraph ends with a line-break run of length 1, so the length of
    any container is exactly the sum of its children's lengths. Linear
    offsets are a depth-first prefix sum over those lengths and are always
    computed from the current state.

    Examples:
        >>> tree = ContentTree()
        >>> tree.add_paragraph("Hello")
        0
        >>> tree.add_table([["a", "b"], ["c", "d"]])
        3
        >>> tree.length
        14
    """

    def __init__(self) -> None:
        self._nodes: List[Node] = []
        self._top: List[int] = []

    # ------------------------------------------------------------------
    # Arena access
    # ------------------------------------------------------------------

    def node(self, node_id: int) -> Node:
        """Return the node stored at ``node_id``."""
        if not isinstance(node_id, int) or not 0 <= node_id < len(self._nodes):
            raise ValidationError(
                f"Unknown node id {node_id!r}",
                field_name="node_id",
                actual_value=node_id,
            )
        return self._nodes[node_id]

    def kind(self, node_id: int) -> NodeKind:
        return self.node(node_id).kind

    def parent(self, node_id: int) -> Optional[int]:
        return self.node(node_id).parent

    def previous_sibling(self, node_id: int) -> Optional[int]:
        return self.node(node_id).previous_sibling

    def children(self, node_id: int) -> Tuple[int, ...]:
        return tuple(self.node(node_id).children)

    def top_level(self) -> Tuple[int, ...]:
        """Ids of the top-level blocks in document order."""
        return tuple(self._top)

    @property
    def length(self) -> int:
        """Total number of addressable positions in the document."""
        return sum(self._nodes[block_id].length for block_id in self._top)

    def __len__(self) -> int:
        return self.length

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def add_paragraph(
        self,
        text: str = "",
        attributes: Optional[Dict[str, Any]] = None,
        parent: Optional[int] = None,
    ) -> int:
        """
        Append a paragraph (one line) to the document or to a table cell.

        Args:
            text: Line content, must not contain line breaks
            attributes: Initial line formats
            parent: Table cell to append to, None for a top-level line

        Returns:
            int: Id of the new paragraph
        """
        if LINE_BREAK in text:
            raise ValidationError(
                "Paragraph text cannot contain line breaks",
                field_name="text",
                actual_value=text,
            )
        if parent is not None and self.kind(parent) is not NodeKind.TABLE_CELL:
            raise ValidationError(
                "Paragraphs can only be nested inside table cells",
                field_name="parent",
                actual_value=self.kind(parent).value,
            )

        paragraph = self._new(NodeKind.PARAGRAPH, attributes=dict(attributes or {}))
        self._link(paragraph.id, parent, len(self._siblings(parent)))
        if text:
            run = self._new(NodeKind.INLINE_RUN, text=text)
            self._link(run.id, paragraph.id, 0)
        line_break = self._new(NodeKind.INLINE_RUN, text=LINE_BREAK)
        self._link(line_break.id, paragraph.id, len(paragraph.children))
        return paragraph.id

    def add_table(self, cells: Sequence[Sequence[str]]) -> int:
        """
        Append a table region built from a grid of cell texts.

        Cell text containing line breaks produces one cell line per line.

        Args:
            cells: Rows of cell texts; at least one row with one cell

        Returns:
            int: Id of the table-region node
        """
        if not cells or any(not row for row in cells):
            raise ValidationError(
                "A table needs at least one row and every row at least one cell",
                field_name="cells",
            )

        region = self._new(NodeKind.TABLE_REGION)
        self._link(region.id, None, len(self._top))
        for row_cells in cells:
            row = self._new(NodeKind.TABLE_ROW)
            self._link(row.id, region.id, len(region.children))
            for cell_text in row_cells:
                cell = self._new(NodeKind.TABLE_CELL)
                self._link(cell.id, row.id, len(row.children))
                for line in str(cell_text).split(LINE_BREAK):
                    self.add_paragraph(line, parent=cell.id)
        logger.debug(f"Added table region {region.id} with length {region.length}")
        return region.id

    def add_embed(
        self, embed_kind: str, value: Any = True, line: Optional[int] = None
    ) -> int:
        """
        Append an embed.

        Args:
            embed_kind: Embed type, e.g. ``"image"`` or ``"divider"``
            value: Embed payload
            line: Paragraph to append an inline embed to; None appends a
                top-level block embed

        Returns:
            int: Id of the embed node
        """
        embed = self._new(
            NodeKind.EMBED, attributes={"embed": embed_kind, "value": value}
        )
        if line is None:
            self._link(embed.id, None, len(self._top))
        else:
            self._require_kind(line, NodeKind.PARAGRAPH)
            self._link(embed.id, line, len(self.node(line).children) - 1)
        return embed.id

    def append_text(self, line: int, text: str) -> int:
        """Append an inline run just before a paragraph's line break."""
        self._require_kind(line, NodeKind.PARAGRAPH)
        return self.insert_run(line, len(self.node(line).children) - 1, text)

    # ------------------------------------------------------------------
    # Mutation primitives
    # ------------------------------------------------------------------

    def insert_run(
        self,
        line: int,
        position: int,
        text: str,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Insert an inline run as the ``position``-th child of a paragraph."""
        self._require_kind(line, NodeKind.PARAGRAPH)
        if not text or LINE_BREAK in text:
            raise ValidationError(
                "Inline runs need non-empty text without line breaks",
                field_name="text",
                actual_value=text,
            )
        run = self._new(NodeKind.INLINE_RUN, text=text, attributes=dict(attributes or {}))
        self._link(run.id, line, position)
        return run.id

    def set_run_text(self, run_id: int, text: str) -> None:
        """Replace the text of an inline run, adjusting ancestor lengths."""
        run = self.node(run_id)
        if run.kind is not NodeKind.INLINE_RUN or run.is_line_break:
            raise ValidationError("Only text runs can be rewritten", field_name="run_id")
        if not text or LINE_BREAK in text:
            raise ValidationError("Run text must be non-empty without line breaks")
        delta = len(text) - len(run.text)
        run.text = text
        run.length = len(text)
        self._grow(run.parent, delta)

    def insert_text(self, index: int, text: str) -> None:
        """
        Insert text at a linear position.

        Line breaks in ``text`` split the containing line.

        Args:
            index: Linear position to insert at
            text: Text to insert

        Raises:
            OutOfBoundsError: If ``index`` is outside the document
            ValidationError: If ``index`` falls on a top-level block embed
        """
        for number, chunk in enumerate(text.split(LINE_BREAK)):
            if number:
                self.split_line(index)
                index += 1
            if chunk:
                self._insert_chunk(index, chunk)
                index += len(chunk)

    def split_line(self, index: int) -> int:
        """
        Insert a line break at ``index``, splitting the containing paragraph.

        The leaves from ``index`` on move to a new paragraph inserted right
        after the original one; it inherits the original line's attributes.
        At the document end the break lands before the final line break,
        appending an empty line.

        Returns:
            int: Id of the new (second) paragraph
        """
        leaf_id, offset = self.locate(index)
        leaf = self.node(leaf_id)
        line = leaf.parent
        if line is None or self.kind(line) is not NodeKind.PARAGRAPH:
            raise ValidationError(
                "Cannot split a block embed", field_name="index", actual_value=index
            )

        if leaf.is_marker:
            leaf_id = self.node(line).children[self.node(line).children.index(leaf_id) + 1]
        elif offset and not leaf.is_line_break:
            # Split the run so the break lands on a leaf boundary
            leaf_id = self._split_run(leaf_id, offset)

        paragraph = self.node(line)
        split_at = paragraph.children.index(leaf_id)
        moved = paragraph.children[split_at:]
        for child_id in reversed(moved):
            self._unlink(child_id)

        owner = paragraph.parent
        siblings = self._siblings(owner)
        new_line = self._new(NodeKind.PARAGRAPH, attributes=dict(paragraph.attributes))
        self._link(new_line.id, owner, siblings.index(line) + 1)
        for position, child_id in enumerate(moved):
            self._link(child_id, new_line.id, position)

        line_break = self._new(NodeKind.INLINE_RUN, text=LINE_BREAK)
        self._link(line_break.id, line, len(paragraph.children))
        return new_line.id

    def insert_embed(self, index: int, embed_kind: str, value: Any = True) -> int:
        """Insert an inline embed at a linear position inside a line."""
        leaf_id, offset = self.locate(index)
        leaf = self.node(leaf_id)
        line = leaf.parent
        if line is None:
            raise ValidationError(
                "Cannot insert an inline embed into a block embed",
                field_name="index",
                actual_value=index,
            )
        position = self.node(line).children.index(leaf_id)
        if leaf.is_marker:
            position += 1
        elif offset:
            self._split_run(leaf_id, offset)
            position += 1
        embed = self._new(NodeKind.EMBED, attributes={"embed": embed_kind, "value": value})
        self._link(embed.id, line, position)
        return embed.id

    def insert_block_embed(self, index: int, embed_kind: str, value: Any = True) -> int:
        """
        Insert a top-level block embed at the start of a top-level block.

        Raises:
            ValidationError: If ``index`` is not a top-level block boundary
        """
        if index == self.length:
            position = len(self._top)
        else:
            position = None
            offset = 0
            for number, block_id in enumerate(self._top):
                if offset == index:
                    position = number
                    break
                offset += self._nodes[block_id].length
            if position is None:
                if not 0 <= index <= self.length:
                    raise create_out_of_bounds_error(index, 0, self.length)
                raise ValidationError(
                    "Block embeds must be inserted at a top-level line boundary",
                    field_name="index",
                    actual_value=index,
                )
        embed = self._new(NodeKind.EMBED, attributes={"embed": embed_kind, "value": value})
        self._link(embed.id, None, position)
        return embed.id

    def remove_node(self, node_id: int) -> None:
        """Detach a node (and its subtree) from the tree."""
        node = self.node(node_id)
        if node.detached:
            return
        if node.is_line_break:
            raise ValidationError("A paragraph's line break cannot be removed")
        self._unlink(node_id)
        node.detached = True

    def set_line_attribute(self, line: int, name: str, value: Any) -> None:
        """Set (or, with ``None``, clear) a line format on a paragraph."""
        self._require_kind(line, NodeKind.PARAGRAPH)
        attributes = self.node(line).attributes
        if value is None:
            attributes.pop(name, None)
        else:
            attributes[name] = value

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def offset_of(self, node_id: int) -> int:
        """Linear start offset of a node, measured from the current state."""
        node = self.node(node_id)
        if node.detached:
            raise ValidationError(f"Node {node_id} is detached", field_name="node_id")
        offset = 0
        while True:
            sibling = node.previous_sibling
            while sibling is not None:
                offset += self._nodes[sibling].length
                sibling = self._nodes[sibling].previous_sibling
            if node.parent is None:
                return offset
            node = self._nodes[node.parent]

    def span_of(self, node_id: int) -> Tuple[int, int]:
        """``[start, end)`` offsets of a node."""
        start = self.offset_of(node_id)
        return start, start + self.node(node_id).length

    def locate(self, index: int, prefer_end: bool = False) -> Tuple[int, int]:
        """
        Find the leaf holding a linear position.

        With ``prefer_end`` a position on a leaf boundary resolves to the end
        of the leaf on its left; otherwise to the start of the leaf on its
        right. The document end always resolves to the end of the last leaf.

        Returns:
            Tuple[int, int]: ``(leaf_id, offset_within_leaf)``
        """
        if not self._top:
            raise OutOfBoundsError("Document is empty", index=index, document_length=0)
        if not 0 <= index <= self.length:
            raise create_out_of_bounds_error(index, 0, self.length)
        if index == 0:
            prefer_end = False
        elif index == self.length:
            prefer_end = True

        siblings = self._top
        base = 0
        while True:
            for child_id in siblings:
                child = self._nodes[child_id]
                end = base + child.length
                hit = base < index <= end if prefer_end else base <= index < end
                if hit:
                    break
                base = end
            else:
                raise RegionIntegrityError(
                    f"Position {index} not covered by any node",
                    actual_length=base,
                )
            if child.is_leaf:
                return child_id, index - base
            siblings = child.children

    def iter_leaves(self, node_id: Optional[int] = None) -> Iterator[Tuple[int, int]]:
        """Yield ``(leaf_id, start_offset)`` in document order."""
        start = 0 if node_id is None else self.offset_of(node_id)
        roots = self._top if node_id is None else [node_id]
        stack = list(reversed(roots))
        while stack:
            current = self._nodes[stack.pop()]
            if current.is_leaf:
                yield current.id, start
                start += current.length
            else:
                stack.extend(reversed(current.children))

    def iter_lines(self) -> Iterator[Tuple[int, int]]:
        """Yield ``(paragraph_id, start_offset)`` for every line in order."""
        offset = 0
        stack = list(reversed(self._top))
        while stack:
            current = self._nodes[stack.pop()]
            if current.kind is NodeKind.PARAGRAPH:
                yield current.id, offset
                offset += current.length
            elif current.is_leaf:
                offset += current.length
            else:
                stack.extend(reversed(current.children))

    def line_of(self, node_id: int) -> Optional[int]:
        """The paragraph enclosing (or equal to) a node, if any."""
        current: Optional[int] = node_id
        while current is not None:
            if self._nodes[current].kind is NodeKind.PARAGRAPH:
                return current
            current = self._nodes[current].parent
        return None

    def line_at(self, index: int) -> Optional[int]:
        """The paragraph containing a linear position (None on block embeds)."""
        leaf_id, _ = self.locate(index)
        return self.line_of(leaf_id)

    def enclosing_table(self, node_id: int) -> Optional[int]:
        """The table region a node belongs to, if any."""
        current: Optional[int] = node_id
        while current is not None:
            if self._nodes[current].kind is NodeKind.TABLE_REGION:
                return current
            current = self._nodes[current].parent
        return None

    def line_text(self, line: int, include_markers: bool = True) -> str:
        """Text of a paragraph without its trailing line break."""
        self._require_kind(line, NodeKind.PARAGRAPH)
        parts = []
        for child_id in self.node(line).children:
            child = self._nodes[child_id]
            if child.is_line_break or (child.is_marker and not include_markers):
                continue
            parts.append(EMBED_PLACEHOLDER if child.kind is NodeKind.EMBED else child.text)
        return "".join(parts)

    def text(self) -> str:
        """Linear text of the whole document, one character per position."""
        return "".join(
            EMBED_PLACEHOLDER if self._nodes[leaf_id].kind is NodeKind.EMBED
            else self._nodes[leaf_id].text
            for leaf_id, _ in self.iter_leaves()
        )

    def measure(self, node_id: int) -> int:
        """Recompute a node's length from its leaves, ignoring cached values."""
        node = self.node(node_id)
        if node.kind is NodeKind.INLINE_RUN:
            return len(node.text)
        if node.kind is NodeKind.EMBED:
            return 1
        return sum(self.measure(child_id) for child_id in node.children)

    def check_integrity(self, node_id: int) -> None:
        """
        Verify a table region's structure and cached lengths.

        Raises:
            RegionIntegrityError: If the region contains a node of the wrong
                kind, a nested region, or a cached length that disagrees with
                the measured one
        """
        region = self.node(node_id)
        if region.kind is not NodeKind.TABLE_REGION:
            raise RegionIntegrityError(
                f"Node {node_id} is a {region.kind.value}, not a table region",
                node_id=node_id,
            )
        if region.parent is not None:
            raise RegionIntegrityError(
                f"Table region {node_id} is nested inside node {region.parent}",
                node_id=node_id,
            )
        if not region.children:
            raise RegionIntegrityError(f"Table region {node_id} has no rows", node_id=node_id)

        stack = [node_id]
        while stack:
            current = self._nodes[stack.pop()]
            measured = self.measure(current.id)
            if measured != current.length:
                raise RegionIntegrityError(
                    f"Node {current.id} caches length {current.length} "
                    f"but measures {measured}",
                    node_id=current.id,
                    expected_length=measured,
                    actual_length=current.length,
                )
            expected_child = TABLE_CHILD_KINDS.get(current.kind)
            if expected_child is None:
                continue
            for child_id in current.children:
                child_kind = self._nodes[child_id].kind
                if child_kind is not expected_child:
                    raise RegionIntegrityError(
                        f"Table region {node_id} contains a {child_kind.value} "
                        f"where a {expected_child.value} is required",
                        node_id=child_id,
                    )
                stack.append(child_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _new(self, kind: NodeKind, text: str = "", attributes: Optional[Dict[str, Any]] = None) -> Node:
        node = Node(id=len(self._nodes), kind=kind, text=text, attributes=attributes or {})
        if kind is NodeKind.INLINE_RUN:
            node.length = len(text)
        elif kind is NodeKind.EMBED:
            node.length = 1
        self._nodes.append(node)
        return node

    def _siblings(self, parent: Optional[int]) -> List[int]:
        return self._top if parent is None else self._nodes[parent].children

    def _require_kind(self, node_id: int, kind: NodeKind) -> None:
        actual = self.kind(node_id)
        if actual is not kind:
            raise ValidationError(
                f"Node {node_id} is a {actual.value}, expected {kind.value}",
                field_name="node_id",
                expected_type=kind.value,
                actual_value=actual.value,
            )

    def _link(self, child_id: int, parent: Optional[int], position: int) -> None:
        siblings = self._siblings(parent)
        child = self._nodes[child_id]
        siblings.insert(position, child_id)
        child.parent = parent
        child.previous_sibling = siblings[position - 1] if position else None
        if position + 1 < len(siblings):
            self._nodes[siblings[position + 1]].previous_sibling = child_id
        self._grow(parent, child.length)

    def _unlink(self, child_id: int) -> None:
        child = self._nodes[child_id]
        siblings = self._siblings(child.parent)
        position = siblings.index(child_id)
        siblings.pop(position)
        if position < len(siblings):
            self._nodes[siblings[position]].previous_sibling = child.previous_sibling
        self._grow(child.parent, -child.length)
        child.parent = None
        child.previous_sibling = None

    def _grow(self, node_id: Optional[int], delta: int) -> None:
        while node_id is not None and delta:
            node = self._nodes[node_id]
            node.length += delta
            node_id = node.parent

    def _split_run(self, run_id: int, offset: int) -> int:
        """Split a text run at ``offset``; returns the id of the right half."""
        run = self.node(run_id)
        tail = run.text[offset:]
        self.set_run_text(run_id, run.text[:offset])
        position = self.node(run.parent).children.index(run_id) + 1
        return self.insert_run(run.parent, position, tail, run.attributes)

    def _insert_chunk(self, index: int, chunk: str) -> None:
        leaf_id, offset = self.locate(index)
        leaf = self.node(leaf_id)
        if leaf.parent is None:
            raise ValidationError(
                "Cannot insert text into a block embed",
                field_name="index",
                actual_value=index,
            )
        if leaf.is_marker:
            # Text typed at the start of a list line goes after its marker
            position = self.node(leaf.parent).children.index(leaf_id) + 1
            self.insert_run(leaf.parent, position, chunk)
        elif leaf.kind is NodeKind.INLINE_RUN and not leaf.is_line_break:
            self.set_run_text(leaf_id, leaf.text[:offset] + chunk + leaf.text[offset:])
        else:
            position = self.node(leaf.parent).children.index(leaf_id)
            self.insert_run(leaf.parent, position, chunk)
