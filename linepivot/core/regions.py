"""Detection of table regions intersecting a range."""

import logging
from dataclasses import dataclass
from typing import List

from .exceptions import RegionIntegrityError
from .ranges import Range, RangeModel
from .tree import ContentTree, NodeKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableRegion:
    """
    A table region located in the linear document.

    Attributes:
        node_id: Id of the table-region root node
        start: Offset of the region's first position
        end: Offset just past the region's last position
        is_entry: Whether this is the first region entered from the left,
            i.e. no other region starts before it within the range
    """

    node_id: int
    start: int
    end: int
    is_entry: bool = False

    @property
    def length(self) -> int:
        return self.end - self.start

    def starts_inside(self, selection: Range) -> bool:
        """Whether the region's first row lies inside the selection."""
        return selection.index <= self.start < max(selection.end, selection.index + 1)

    def to_dict(self) -> dict:
        return {
            "node_id": self.node_id,
            "start": self.start,
            "end": self.end,
            "is_entry": self.is_entry,
        }


class TableRegionDetector:
    """
    Finds every table region that a range touches.

    The scan walks the top-level blocks once, keeping a running offset, and
    stops as soon as the offset passes the end of the range. Table content is
    never descended into except for the integrity check of a hit.

    Examples:
        >>> detector = TableRegionDetector(tree)
        >>> [region.start for region in detector.find_regions(Range(0, 50))]
        [10]
    """

    def __init__(self, tree: ContentTree) -> None:
        self.tree = tree
        self.range_model = RangeModel(tree)

    def find_regions(self, selection: Range) -> List[TableRegion]:
        """
        Return the table regions intersecting ``selection``.

        Partial overlap at either edge counts. A caret counts when it lies
        inside a region.

        Args:
            selection: Range to scan

        Returns:
            List[TableRegion]: Regions ordered by ascending start offset;
            empty when the range holds no table content

        Raises:
            OutOfBoundsError: If the range exceeds the document
            RegionIntegrityError: If a hit region is structurally inconsistent
        """
        self.range_model.check(selection)

        regions: List[TableRegion] = []
        offset = 0
        for block_id in self.tree.top_level():
            if offset > selection.end or (offset == selection.end and not selection.is_caret):
                break
            block = self.tree.node(block_id)
            start, end = offset, offset + block.length
            offset = end
            if block.kind is not NodeKind.TABLE_REGION:
                continue
            if not selection.overlaps(start, end):
                continue

            self.tree.check_integrity(block_id)
            if end > self.tree.length:
                raise RegionIntegrityError(
                    f"Table region {block_id} ends at {end}, past the document end",
                    node_id=block_id,
                    expected_length=self.tree.length - start,
                    actual_length=block.length,
                )
            regions.append(
                TableRegion(node_id=block_id, start=start, end=end, is_entry=not regions)
            )

        if regions:
            logger.debug(
                f"Range [{selection.index}, {selection.end}) intersects "
                f"{len(regions)} table region(s): "
                + ", ".join(f"[{r.start}, {r.end})" for r in regions)
            )
        return regions
