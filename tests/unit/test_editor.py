"""Unit tests for the editing host."""

import pytest

from linepivot.core.config import EditorConfig
from linepivot.core.exceptions import OutOfBoundsError, ValidationError
from linepivot.core.ranges import Range
from linepivot.core.tree import ContentTree
from linepivot.editor import ChangeEvent, Editor, Source


class TestSelection:
    """Selection changes and their listeners."""

    def test_set_selection_notifies(self, editor):
        notified = []
        editor.on_selection_change(lambda selection, source: notified.append((selection, source)))

        editor.set_selection(3, 4)

        assert editor.get_selection() == Range(3, 4)
        assert notified == [(Range(3, 4), Source.API)]

    def test_silent_selection_does_not_notify(self, editor):
        notified = []
        editor.on_selection_change(lambda selection, source: notified.append(source))
        editor.set_selection(3, 0, Source.SILENT)
        assert notified == []

    def test_selection_out_of_bounds(self, editor):
        with pytest.raises(OutOfBoundsError):
            editor.set_selection(45, 10)
        assert editor.get_selection() is None

    def test_unsubscribe(self, editor):
        notified = []
        unsubscribe = editor.on_selection_change(lambda selection, source: notified.append(source))
        unsubscribe()
        editor.set_selection(1)
        assert notified == []


class TestQueries:
    """Line and format queries."""

    def test_get_lines_includes_cells(self, editor):
        assert len(editor.get_lines(0, 50)) == 7

    def test_get_format_shared_attributes(self, editor):
        tree = editor.tree
        paragraph, _, second, _ = tree.top_level()
        tree.set_line_attribute(paragraph, "list", "ordered")
        tree.set_line_attribute(paragraph, "number", 1)
        tree.set_line_attribute(second, "list", "ordered")
        tree.set_line_attribute(second, "number", 2)
        tree.set_line_attribute(second, "indent", 1)

        assert editor.get_format(0, 42) == {"list": "ordered"}
        assert editor.get_format(30, 12) == {"list": "ordered", "indent": 1}

    def test_get_format_inside_table_is_empty(self, editor):
        assert editor.get_format(12, 5) == {}

    def test_lines_summary(self, editor):
        summary = editor.lines_summary()

        assert len(summary) == 7
        assert summary[0] == {
            "line": editor.tree.top_level()[0],
            "start": 0,
            "in_table": False,
            "text": "Line one.",
            "attributes": {},
        }
        assert [row["in_table"] for row in summary] == [False, True, True, True, True, False, False]


class TestMutations:
    """Mutation primitives and change events."""

    def test_format_lines_emits_one_event(self, editor):
        events = []
        editor.on_change(events.append)
        lines = list(editor.tree.top_level()[2:])

        event = editor.format_lines(
            lines, [{"indent": 1}, {"indent": 2}], Range(30, 20), {"indent": 1}
        )

        assert events == [event]
        assert event == ChangeEvent(30, 20, {"indent": 1}, Source.USER, tuple(lines))

    def test_format_lines_requires_one_update_per_line(self, editor):
        with pytest.raises(ValidationError):
            editor.format_lines([0], [], Range(0, 10), {})

    def test_insert_text_event(self, editor):
        events = []
        editor.on_change(events.append)
        editor.insert_text(0, "New ")

        assert events[0].index == 0
        assert events[0].length == 4
        assert editor.tree.line_text(editor.tree.top_level()[0]) == "New Line one."

    def test_inline_markers_follow_list_attribute(self):
        tree = ContentTree()
        line = tree.add_paragraph("Item")
        config = EditorConfig.from_dict({"formatting": {"marker_style": "inline"}})
        editor = Editor(tree, config)

        event = editor.format_lines([line], [{"list": "bullet"}], Range(0, 5), {"list": "bullet"})
        assert tree.line_text(line) == "• Item"
        assert tree.line_text(line, include_markers=False) == "Item"
        assert event.length == 7

        editor.format_lines([line], [{"list": "checked"}], Range(0, 7), {"list": "checked"})
        assert tree.line_text(line) == "[x] Item"

        editor.format_lines([line], [{"list": None}], Range(0, 9), {"list": None})
        assert tree.line_text(line) == "Item"
        assert tree.length == 5

    def test_text_typed_at_line_start_goes_after_marker(self):
        tree = ContentTree()
        line = tree.add_paragraph("Item")
        editor = Editor(tree, EditorConfig.from_dict({"formatting": {"marker_style": "inline"}}))
        editor.format_lines([line], [{"list": "bullet"}], Range(0, 5), {})

        editor.insert_text(0, "First ")

        assert tree.line_text(line) == "• First Item"

    def test_insert_embed(self, editor):
        event = editor.insert_embed(2, "image", {"src": "a.png"})
        assert event.length == 1
        assert editor.tree.length == 51

    def test_insert_block_embed(self, editor):
        event = editor.insert_block_embed(30, "divider")
        assert event.attributes == {"insert": {"divider": True}}
        assert editor.tree.length == 51
