"""Loading DoclingDocument content into LinePivot content trees."""

from .loader import DoclingTreeBuilder, load_docling, load_document, tree_from_docling

__all__ = [
    "DoclingTreeBuilder",
    "load_docling",
    "load_document",
    "tree_from_docling",
]
