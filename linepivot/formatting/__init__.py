"""Line-level formatting over selections that may cross tables."""

from .applier import FormatApplier
from .commands import CommandResult, FormatCommand

__all__ = ["CommandResult", "FormatApplier", "FormatCommand"]
