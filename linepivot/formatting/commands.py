"""Formatting commands: selection in, table-aware line formatting out."""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..core.exceptions import ValidationError
from ..core.formats import FormatKind, resolve_list_value
from ..core.ranges import Range, RangeModel, SubRange
from ..core.regions import TableRegion, TableRegionDetector
from ..core.splitter import RangeSplitter
from ..editor import ChangeEvent, Editor, Source
from ..observability import command_context, get_logger
from .applier import FormatApplier

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """
    Outcome of a formatting command.

    Attributes:
        kind: Format that was applied
        value: Value that was applied (after list toggling)
        selection: Selection the command started from
        regions: Table regions the selection crossed
        sub_ranges: Sub-ranges the selection was split into
        events: Change events, one per sub-range that was formatted
        skipped: Sub-ranges that had gone stale and were skipped
    """

    kind: FormatKind
    value: Any
    selection: Range
    regions: List[TableRegion] = field(default_factory=list)
    sub_ranges: List[SubRange] = field(default_factory=list)
    events: List[ChangeEvent] = field(default_factory=list)
    skipped: List[SubRange] = field(default_factory=list)

    @property
    def applied(self) -> bool:
        return bool(self.events)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "value": getattr(self.value, "value", self.value),
            "selection": self.selection.to_dict(),
            "regions": [region.to_dict() for region in self.regions],
            "sub_ranges": [sub.as_range().to_dict() for sub in self.sub_ranges],
            "events": [
                {"index": event.index, "length": event.length, "attributes": event.attributes}
                for event in self.events
            ],
            "skipped": len(self.skipped),
        }


class FormatCommand:
    """
    Runs a line-level format over the current selection.

    The selection is checked against the document, scanned for table
    regions and, when it crosses any, split into the stretches between
    them. Each stretch is formatted in document order; tables are left
    untouched.

    Examples:
        >>> command = FormatCommand(editor)
        >>> editor.set_selection(0, 50)
        >>> result = command.execute(FormatKind.LIST, "ordered")
        >>> [(s.index, s.length) for s in result.sub_ranges]
        [(0, 10), (30, 20)]
    """

    def __init__(self, editor: Editor) -> None:
        self.editor = editor
        self.range_model = RangeModel(editor.tree)
        self.detector = TableRegionDetector(editor.tree)
        self.splitter = RangeSplitter(editor.tree)
        self.applier = FormatApplier(editor)

    def execute(
        self,
        kind: FormatKind,
        value: Any,
        selection: Optional[Range] = None,
    ) -> CommandResult:
        """
        Apply a format to a selection (defaults to the editor's selection).

        Args:
            kind: Format to apply
            value: Requested value; list values toggle off when the selection
                already carries the same list kind
            selection: Range to format instead of the current selection

        Returns:
            CommandResult: What was split, applied and skipped

        Raises:
            ValidationError: If there is no selection
            OutOfBoundsError: If the selection exceeds the document; nothing
                is mutated
            RegionIntegrityError: If a crossed table region is inconsistent;
                sub-ranges already formatted stay formatted
        """
        kind = FormatKind(kind)
        if selection is None:
            selection = self.editor.get_selection()
        if selection is None:
            raise ValidationError("No selection to format", field_name="selection")

        with command_context():
            self.range_model.resolve(selection)
            length_before = self.editor.tree.length

            if kind is FormatKind.LIST:
                current = self.editor.get_format(selection.index, selection.length).get("list")
                value = resolve_list_value(value, current)

            regions = self.detector.find_regions(selection)
            if regions:
                sub_ranges = self.splitter.split(selection, regions)
                entry = regions[0]
                logger.debug(
                    "selection_crosses_tables",
                    kind=kind.value,
                    regions=len(regions),
                    entry_region=entry.node_id,
                    entry_first_row_selected=entry.starts_inside(selection),
                    sub_ranges=len(sub_ranges),
                )
            else:
                sub_ranges = [SubRange.from_range(selection, self.editor.tree)]

            result = CommandResult(
                kind=kind,
                value=value,
                selection=selection,
                regions=regions,
                sub_ranges=sub_ranges,
            )

            for position, sub_range in enumerate(sub_ranges, start=1):
                # Only the last sub-range renumbers past the selection
                event = self.applier.apply(
                    sub_range,
                    kind,
                    value,
                    source=Source.USER,
                    renumber_following=position == len(sub_ranges),
                )
                if event is None:
                    result.skipped.append(sub_range)
                else:
                    result.events.append(event)

            if result.events:
                self._restore_selection(selection, length_before)

            logger.debug(
                "format_command_done",
                kind=kind.value,
                applied=len(result.events),
                skipped=len(result.skipped),
            )
            return result

    def _restore_selection(self, selection: Range, length_before: int) -> None:
        """Keep the selection covering the same content after the edit."""
        if selection.is_caret:
            length = 0
        else:
            length = max(0, selection.length + self.editor.tree.length - length_before)
        self.editor.set_selection(selection.index, length, Source.SILENT)

    def toggle_list(self, value: Any, selection: Optional[Range] = None) -> CommandResult:
        return self.execute(FormatKind.LIST, value, selection)

    def set_header(self, level: int, selection: Optional[Range] = None) -> CommandResult:
        return self.execute(FormatKind.HEADER, level, selection)

    def indent(self, delta: int, selection: Optional[Range] = None) -> CommandResult:
        return self.execute(FormatKind.INDENT, delta, selection)

    def set_line_height(self, token: Optional[str], selection: Optional[Range] = None) -> CommandResult:
        return self.execute(FormatKind.LINE_HEIGHT, token, selection)

    def insert_divider(self) -> Range:
        """
        Insert a divider below the caret's line break.

        A line break is inserted at the selection start, the divider block
        goes right after it and the caret moves past the divider silently.
        A caret past the final line break counts as sitting before it.

        Returns:
            Range: The new caret

        Raises:
            ValidationError: If there is no selection, or it does not start
                in a top-level line; nothing is mutated
        """
        selection = self.editor.get_selection()
        if selection is None:
            raise ValidationError("No selection to insert a divider at", field_name="selection")

        tree = self.editor.tree
        index = min(selection.index, tree.length - 1)
        line = tree.line_at(index)
        if line is None or tree.parent(line) is not None:
            raise ValidationError(
                "Dividers can only be inserted in a top-level line",
                field_name="selection",
                actual_value=selection.index,
            )

        with command_context():
            self.editor.insert_text(index, "\n", Source.USER)
            self.editor.insert_block_embed(index + 1, "divider", True, Source.USER)
            caret = self.editor.set_selection(index + 2, 0, Source.SILENT)
            logger.debug("divider_inserted", index=index + 1)
            return caret
