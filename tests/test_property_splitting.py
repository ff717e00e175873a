"""Property-based tests for table-aware splitting and formatting."""

from typing import List, Tuple

import pytest
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from linepivot.core.config import EditorConfig, FormattingConfig
from linepivot.core.formats import FormatKind
from linepivot.core.ranges import Range
from linepivot.core.regions import TableRegionDetector
from linepivot.core.splitter import RangeSplitter
from linepivot.core.tree import ContentTree
from linepivot.editor import Editor
from linepivot.formatting import FormatCommand


def block_strategy() -> st.SearchStrategy[List[Tuple[str, int]]]:
    """Generate documents as ``(kind, length)`` blocks."""
    block = st.tuples(st.sampled_from(["line", "line", "table"]), st.integers(1, 12))
    return st.lists(block, min_size=1, max_size=8)


def _build(blocks: List[Tuple[str, int]]) -> ContentTree:
    tree = ContentTree()
    for kind, length in blocks:
        if kind == "line":
            tree.add_paragraph("x" * (length - 1))
        else:
            tree.add_table([["y" * (length - 1)]])
    return tree


@st.composite
def document_and_range(draw):
    tree = _build(draw(block_strategy()))
    index = draw(st.integers(0, tree.length))
    length = draw(st.integers(0, tree.length - index))
    return tree, Range(index, length)


class TestSplittingProperties:
    """Invariants of splitting a range around table regions."""

    @pytest.mark.property
    @given(case=document_and_range())
    def test_sub_ranges_avoid_tables_and_cover_the_rest(self, case):
        tree, selection = case
        assume(not selection.is_caret)
        regions = TableRegionDetector(tree).find_regions(selection)
        sub_ranges = RangeSplitter(tree).split(selection, regions)

        covered = set()
        previous_end = -1
        for sub in sub_ranges:
            assert sub.length > 0
            assert sub.index > previous_end
            previous_end = sub.end
            covered.update(range(sub.index, sub.end))

        in_tables = set()
        for region in regions:
            in_tables.update(range(region.start, region.end))
        expected = set(range(selection.index, selection.end)) - in_tables

        assert covered == expected

    @pytest.mark.property
    @given(case=document_and_range())
    def test_regions_are_ordered_with_single_entry(self, case):
        tree, selection = case
        regions = TableRegionDetector(tree).find_regions(selection)

        assert [r.start for r in regions] == sorted(r.start for r in regions)
        assert [r.is_entry for r in regions] == [i == 0 for i in range(len(regions))]
        for region in regions:
            assert selection.overlaps(region.start, region.end)


class TestFormattingProperties:
    """Formatting never touches table content."""

    @pytest.mark.property
    @settings(max_examples=50)
    @given(case=document_and_range(), inline=st.booleans())
    def test_table_cells_unchanged_and_lengths_consistent(self, case, inline):
        tree, selection = case
        style = "inline" if inline else "attribute"
        editor = Editor(tree, EditorConfig(formatting=FormattingConfig(marker_style=style)))
        cells_before = [
            (line, tree.line_text(line), dict(tree.node(line).attributes))
            for line, _ in tree.iter_lines()
            if tree.enclosing_table(line) is not None
        ]

        FormatCommand(editor).execute(FormatKind.LIST, "ordered", selection)

        cells_after = [
            (line, tree.line_text(line), dict(tree.node(line).attributes))
            for line, _ in tree.iter_lines()
            if tree.enclosing_table(line) is not None
        ]
        assert cells_after == cells_before
        assert len(tree.text()) == tree.length
        for block in tree.top_level():
            node = tree.node(block)
            assert node.length == tree.measure(block)
