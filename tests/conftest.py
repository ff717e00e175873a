"""Shared fixtures for LinePivot tests."""

import json
import logging
import random
from collections.abc import Generator
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest
import structlog
from docling_core.types.doc.document import (
    DocItemLabel,
    DoclingDocument,
    TableCell,
    TableData,
)

from linepivot.core.config import EditorConfig, FormattingConfig, set_config
from linepivot.core.exceptions import OverlayActionError
from linepivot.core.tree import ContentTree
from linepivot.editor import Editor
from linepivot.overlay import ControlElement, Element, Rect


def build_tree(blocks: Sequence[Tuple[str, int]]) -> ContentTree:
    """
    Build a tree from ``(kind, length)`` blocks.

    ``("line", n)`` adds a top-level line of length ``n`` (``n - 1``
    characters plus its line break); ``("table", n)`` adds a single-cell
    table region of length ``n``.
    """
    tree = ContentTree()
    for kind, length in blocks:
        if kind == "line":
            tree.add_paragraph("x" * (length - 1))
        else:
            tree.add_table([["y" * (length - 1)]])
    return tree


@pytest.fixture
def make_tree():
    """Factory building trees from ``(kind, length)`` blocks."""
    return build_tree


@pytest.fixture
def table_tree() -> ContentTree:
    """A 50-position document with a 2x2 table region at [10, 30).

    Layout::

        [0, 10)   "Line one."
        [10, 30)  table: "r1c1" "r1c2" / "r2c1" "r2c2"
        [30, 42)  "Second line"
        [42, 50)  "Closing"
    """
    tree = ContentTree()
    tree.add_paragraph("Line one.")
    tree.add_table([["r1c1", "r1c2"], ["r2c1", "r2c2"]])
    tree.add_paragraph("Second line")
    tree.add_paragraph("Closing")
    return tree


@pytest.fixture
def two_table_tree() -> ContentTree:
    """A 60-position document with table regions at [10, 20) and [40, 50)."""
    return build_tree(
        [("line", 10), ("table", 10), ("line", 20), ("table", 10), ("line", 10)]
    )


@pytest.fixture
def inline_config() -> EditorConfig:
    """Configuration rendering list markers as inline text."""
    return EditorConfig(formatting=FormattingConfig(marker_style="inline"))


@pytest.fixture
def editor(table_tree: ContentTree) -> Editor:
    """Editor over the table document with default configuration."""
    return Editor(table_tree, EditorConfig())


@pytest.fixture
def inline_editor(table_tree: ContentTree, inline_config: EditorConfig) -> Editor:
    """Editor over the table document with inline list markers."""
    return Editor(table_tree, inline_config)


def _cell(text: str, row: int, col: int) -> TableCell:
    return TableCell(
        text=text,
        start_row_offset_idx=row,
        end_row_offset_idx=row + 1,
        start_col_offset_idx=col,
        end_col_offset_idx=col + 1,
    )


@pytest.fixture
def docling_document() -> DoclingDocument:
    """A DoclingDocument with a title, a heading, paragraphs and a 2x2 table."""
    doc = DoclingDocument(name="quarterly_report")
    doc.add_title(text="Quarterly Report")
    doc.add_heading(text="Summary", level=1)
    doc.add_text(label=DocItemLabel.TEXT, text="Revenue grew.")

    table_data = TableData(num_rows=2, num_cols=2)
    table_data.table_cells = [
        _cell(text, i, j)
        for i, row in enumerate([["Region", "Sales"], ["North", "120"]])
        for j, text in enumerate(row)
    ]
    doc.add_table(data=table_data)
    doc.add_text(label=DocItemLabel.TEXT, text="Outlook is stable.")
    return doc


@pytest.fixture
def docling_json_path(tmp_path: Path, docling_document: DoclingDocument) -> Path:
    """The sample DoclingDocument written to a JSON file."""
    path = tmp_path / "quarterly_report.json"
    path.write_text(json.dumps(docling_document.export_to_dict()))
    return path


# ---------------------------------------------------------------------------
# Overlay host fakes
# ---------------------------------------------------------------------------


class FakeHost:
    """Overlay host recording attach and detach calls."""

    def __init__(self) -> None:
        self.anchor_rect = Rect(300, 120, 200, 100)
        self.container = Rect(100, 20, 800, 600)
        self.attached: List[ControlElement] = []
        self.detached: List[ControlElement] = []

    def bounding_rect(self, element: Any) -> Rect:
        return self.anchor_rect

    def container_rect(self) -> Rect:
        return self.container

    def attach(self, control: ControlElement) -> None:
        self.attached.append(control)

    def detach(self, control: ControlElement) -> None:
        self.detached.append(control)


class FakeClipboard:
    """Clipboard recording writes; fails when ``error`` is set."""

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.writes: List[Tuple[bytes, str]] = []

    async def write(self, payload: bytes, mime_type: str) -> None:
        if self.error is not None:
            raise self.error
        self.writes.append((payload, mime_type))


class FakeDownloader:
    """Download trigger recording requests."""

    def __init__(self) -> None:
        self.requests: List[Tuple[str, str]] = []

    def trigger(self, url: str, filename: str) -> None:
        self.requests.append((url, filename))


class FakeNotifier:
    """Notifier collecting reported errors."""

    def __init__(self) -> None:
        self.errors: List[OverlayActionError] = []

    def notify(self, error: OverlayActionError) -> None:
        self.errors.append(error)


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def clipboard() -> FakeClipboard:
    return FakeClipboard()


@pytest.fixture
def failing_clipboard() -> FakeClipboard:
    """Clipboard whose writes are refused."""
    return FakeClipboard(error=PermissionError("denied"))


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def image() -> Element:
    """An attached image element."""
    return Element(
        tag="img",
        src="https://images.example.com/chart.png",
        dataset={"title": "chart.png"},
    )


@pytest.fixture
def sample_config_data() -> Dict[str, Any]:
    """Raw configuration data as found under the ``linepivot`` key."""
    return {
        "formatting": {"max_indent": 4, "marker_style": "inline"},
        "overlay": {"bar_offset": 80, "actions": ["copy"]},
        "logging": {"level": "DEBUG", "format": "json"},
    }


@pytest.fixture(autouse=True)
def isolate_test_state() -> Generator[None, None, None]:
    """
    Reset global configuration and logging between tests to guarantee isolation.

    Tests that load a configuration or run the CLI replace the root log
    handlers; they must not leak into tests that rely on the defaults.
    """
    random.seed(42)
    set_config(EditorConfig())
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield
    set_config(None)
    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    structlog.reset_defaults()
