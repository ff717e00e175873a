"""Decomposition of a range into sub-ranges that avoid table regions."""

import logging
from typing import List, Optional, Sequence

from .ranges import Range, RangeModel, SubRange
from .regions import TableRegion, TableRegionDetector
from .tree import ContentTree

logger = logging.getLogger(__name__)


class RangeSplitter:
    """
    Splits a selection around the table regions it crosses.

    Table content is excluded from line-level formatting, so every region is
    skipped and the text between regions becomes its own sub-range. The
    sub-ranges come out in document order, which is also the order they must
    be applied in.

    Examples:
        >>> splitter = RangeSplitter(tree)  # table region at [10, 30)
        >>> [(s.index, s.length) for s in splitter.split(Range(0, 50))]
        [(0, 10), (30, 20)]
    """

    def __init__(self, tree: ContentTree) -> None:
        self.tree = tree
        self.detector = TableRegionDetector(tree)
        self.range_model = RangeModel(tree)

    def split(
        self, selection: Range, regions: Optional[Sequence[TableRegion]] = None
    ) -> List[SubRange]:
        """
        Split ``selection`` into sub-ranges lying outside every table region.

        Args:
            selection: Range to split
            regions: Regions intersecting the range, ascending by start; they
                are detected when omitted

        Returns:
            List[SubRange]: Ordered, non-overlapping sub-ranges. A range with
            no regions yields itself; a range inside one region yields nothing.
        """
        self.range_model.check(selection)
        if regions is None:
            regions = self.detector.find_regions(selection)

        if not regions:
            return [SubRange.from_range(selection, self.tree)]

        measured_at = self.tree.length
        cursor = selection.index
        remaining_end = selection.end
        after_node: Optional[int] = None
        sub_ranges: List[SubRange] = []

        for region in regions:
            if region.start > cursor:
                sub_ranges.append(
                    SubRange(
                        cursor,
                        min(region.start, remaining_end) - cursor,
                        after_node=after_node,
                        before_node=region.node_id,
                        measured_at=measured_at,
                    )
                )
            if region.end > cursor:
                cursor = region.end
                after_node = region.node_id

        if cursor < remaining_end:
            sub_ranges.append(
                SubRange(
                    cursor,
                    remaining_end - cursor,
                    after_node=after_node,
                    measured_at=measured_at,
                )
            )

        logger.debug(
            f"Split [{selection.index}, {selection.end}) around {len(regions)} "
            f"region(s) into {len(sub_ranges)} sub-range(s)"
        )
        return sub_ranges
