"""LinePivot: table-aware line formatting for block-structured documents.

LinePivot applies line-level formats (lists, headers, indentation, line
height) to selections that may cross embedded tables, splitting each
selection around the tables so their cells are never reformatted. It also
provides the lifecycle of a floating action bar for images, and loads
DoclingDocument JSON into its content tree.
"""

__version__ = "0.1.0"
__author__ = "LinePivot Team"
__email__ = "contact@example.com"

from .core import (
    ConfigurationError,
    ContentTree,
    DocumentLoadError,
    EditorConfig,
    FormatKind,
    LinePivotError,
    ListKind,
    Node,
    NodeKind,
    OutOfBoundsError,
    OverlayActionError,
    Range,
    RangeModel,
    RangeSplitter,
    RegionIntegrityError,
    SubRange,
    TableRegion,
    TableRegionDetector,
    ValidationError,
    get_config,
    load_config,
    set_config,
)
from .editor import ChangeEvent, Editor, Source
from .formatting import CommandResult, FormatApplier, FormatCommand

__all__ = [
    "__version__",
    # Content tree and ranges
    "ContentTree",
    "Node",
    "NodeKind",
    "Range",
    "RangeModel",
    "SubRange",
    # Table regions
    "TableRegion",
    "TableRegionDetector",
    "RangeSplitter",
    # Editing and formatting
    "Editor",
    "ChangeEvent",
    "Source",
    "FormatKind",
    "ListKind",
    "FormatApplier",
    "FormatCommand",
    "CommandResult",
    # Configuration
    "EditorConfig",
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
