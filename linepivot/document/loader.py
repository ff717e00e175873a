"""Build content trees from DoclingDocument objects."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

import pydantic
from docling_core.types.doc.document import (
    DoclingDocument,
    ListItem,
    PictureItem,
    SectionHeaderItem,
    TableItem,
    TextItem,
    TitleItem,
)
from packaging import version

from ..core.exceptions import DocumentLoadError
from ..core.formats import ListKind
from ..core.tree import ContentTree

logger = logging.getLogger(__name__)

# Headers deeper than this are clamped
MAX_HEADER_LEVEL = 6


class DoclingTreeBuilder:
    """
    Converts a DoclingDocument into a ContentTree, in reading order.

    * Titles become level-1 header lines, section headers keep their level
      (shifted by one, clamped to six)
    * List items become list lines; consecutive enumerated items are numbered
    * Tables become table regions with one cell line per grid cell
    * Pictures become a line holding an image embed
    * Every other text item becomes a plain line

    Examples:
        >>> tree = DoclingTreeBuilder().build(document)
        >>> tree.length
        42
    """

    def __init__(self) -> None:
        self.stats: Dict[str, int] = {}

    def build(self, document: DoclingDocument) -> ContentTree:
        doc_version = getattr(document, "version", "1.0.0")
        logger.info(f"Building content tree from {document.name} (version: {doc_version})")
        if version.parse(str(doc_version)) < version.parse("1.0.0"):
            logger.warning(f"Document version {doc_version} predates 1.0.0; layout may differ")

        tree = ContentTree()
        self.stats = {"lines": 0, "tables": 0, "pictures": 0, "skipped": 0}
        number = 0

        for item, _level in document.iterate_items():
            if isinstance(item, ListItem):
                if item.enumerated:
                    number += 1
                    attributes: Dict[str, Any] = {
                        "list": ListKind.ORDERED.value,
                        "number": number,
                    }
                else:
                    number = 0
                    attributes = {"list": ListKind.BULLET.value}
                self._add_line(tree, item.text, attributes)
                continue

            number = 0
            if isinstance(item, TableItem):
                self._add_table(tree, item)
            elif isinstance(item, PictureItem):
                self._add_picture(tree, item)
            elif isinstance(item, TitleItem):
                self._add_line(tree, item.text, {"header": 1})
            elif isinstance(item, SectionHeaderItem):
                level = min(MAX_HEADER_LEVEL, max(1, int(item.level) + 1))
                self._add_line(tree, item.text, {"header": level})
            elif isinstance(item, TextItem):
                self._add_line(tree, item.text, {})
            else:
                self.stats["skipped"] += 1
                logger.debug(f"Skipping unsupported item {type(item).__name__}")

        logger.info(
            f"Built content tree: {self.stats['lines']} lines, "
            f"{self.stats['tables']} tables, {self.stats['pictures']} pictures, "
            f"length {tree.length}"
        )
        return tree

    def _add_line(self, tree: ContentTree, text: str, attributes: Dict[str, Any]) -> None:
        for line in (text or "").splitlines() or [""]:
            tree.add_paragraph(line, attributes)
            self.stats["lines"] += 1

    def _add_table(self, tree: ContentTree, item: TableItem) -> None:
        grid = item.data.grid if item.data is not None else []
        cells = [[cell.text for cell in row] for row in grid if row]
        if not cells:
            self.stats["skipped"] += 1
            logger.warning(f"Skipping empty table {item.self_ref}")
            return
        tree.add_table(cells)
        self.stats["tables"] += 1

    def _add_picture(self, tree: ContentTree, item: PictureItem) -> None:
        uri = ""
        if item.image is not None and item.image.uri is not None:
            uri = str(item.image.uri)
        line = tree.add_paragraph()
        tree.add_embed("image", {"src": uri, "ref": item.self_ref}, line=line)
        self.stats["pictures"] += 1


def tree_from_docling(document: DoclingDocument) -> ContentTree:
    """Build a content tree from a DoclingDocument."""
    return DoclingTreeBuilder().build(document)


def load_docling(file_path: Union[str, Path]) -> DoclingDocument:
    """
    Load a Docling JSON file.

    Raises:
        DocumentLoadError: If the file is missing, not JSON, or not a valid
            DoclingDocument
    """
    file_path = Path(file_path)
    logger.info(f"Loading document from {file_path}")
    try:
        with open(file_path, "r") as f:
            doc_dict = json.load(f)
        return DoclingDocument.model_validate(doc_dict)
    except FileNotFoundError as e:
        raise DocumentLoadError(
            f"Document not found: {file_path}", document_path=str(file_path)
        ) from e
    except json.JSONDecodeError as e:
        raise DocumentLoadError(
            f"Document is not valid JSON: {e}", document_path=str(file_path)
        ) from e
    except pydantic.ValidationError as e:
        raise DocumentLoadError(
            f"Document is not a valid DoclingDocument: {e.error_count()} error(s)",
            document_path=str(file_path),
        ) from e


def load_document(file_path: Union[str, Path]) -> ContentTree:
    """Load a Docling JSON file straight into a content tree."""
    return tree_from_docling(load_docling(file_path))
