"""Core document model: content tree, ranges, table regions and splitting."""

from .config import (
    EditorConfig,
    FormattingConfig,
    LoggingConfig,
    OverlayConfig,
    get_config,
    load_config,
    set_config,
)
from .exceptions import (
    ConfigurationError,
    DocumentLoadError,
    LinePivotError,
    OutOfBoundsError,
    OverlayActionError,
    RegionIntegrityError,
    ValidationError,
)
from .formats import FormatKind, ListKind, resolve_list_value
from .ranges import Range, RangeModel, SubRange, TreePosition
from .regions import TableRegion, TableRegionDetector
from .splitter import RangeSplitter
from .tree import ContentTree, Node, NodeKind

__all__ = [
    # Content tree
    "ContentTree",
    "Node",
    "NodeKind",
    # Ranges
    "Range",
    "RangeModel",
    "SubRange",
    "TreePosition",
    # Regions and splitting
    "TableRegion",
    "TableRegionDetector",
    "RangeSplitter",
    # Formats
    "FormatKind",
    "ListKind",
    "resolve_list_value",
    # Configuration
    "EditorConfig",
    "FormattingConfig",
    "LoggingConfig",
    "OverlayConfig",
    "get_config",
    "load_config",
    "set_config",
    # Errors
    "LinePivotError",
    "ValidationError",
    "ConfigurationError",
    "OutOfBoundsError",
    "RegionIntegrityError",
    "OverlayActionError",
    "DocumentLoadError",
]
