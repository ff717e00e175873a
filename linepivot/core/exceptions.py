"""LinePivot exception hierarchy.

This module provides a structured exception hierarchy that separates
structural failures (which abort a formatting command) from overlay action
failures (which are contained at the action boundary) and carries enough
context for logging and reporting.
"""

from typing import Any, Dict, List, Optional


class LinePivotError(Exception):
    """Base exception for all LinePivot-related errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error identifier
        context: Additional error context and metadata
        recovery_suggestions: List of suggested recovery actions
        component: Component where the error originated
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        recovery_suggestions: Optional[List[str]] = None,
        component: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._default_error_code()
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        self.component = component or self._infer_component()

    def _default_error_code(self) -> str:
        """Generate default error code based on exception class name."""
        return self.__class__.__name__.upper().replace("ERROR", "_ERROR")

    def _infer_component(self) -> str:
        """Infer component name from exception class."""
        name = self.__class__.__name__.lower()
        if "validation" in name or "configuration" in name:
            return "validation"
        elif "bounds" in name:
            return "range"
        elif "region" in name:
            return "regions"
        elif "overlay" in name:
            return "overlay"
        elif "document" in name:
            return "document"
        else:
            return "core"

    def add_context(self, key: str, value: Any) -> None:
        """Add additional context to the error."""
        self.context[key] = value

    def add_recovery_suggestion(self, suggestion: str) -> None:
        """Add a recovery suggestion to help users resolve the error."""
        if suggestion not in self.recovery_suggestions:
            self.recovery_suggestions.append(suggestion)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to structured dictionary for logging/reporting."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "component": self.component,
            "context": self.context,
            "recovery_suggestions": self.recovery_suggestions,
        }


class ValidationError(LinePivotError):
    """Raised when input validation fails.

    Used for malformed ranges, unknown format values and other
    argument checks.
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        expected_type: Optional[str] = None,
        actual_value: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if field_name:
            self.add_context("field_name", field_name)
        if expected_type:
            self.add_context("expected_type", expected_type)
        if actual_value is not None:
            self.add_context("actual_value", str(actual_value))


class ConfigurationError(ValidationError):
    """Raised when configuration is invalid or incomplete."""

    def __init__(
        self,
        message: str,
        config_file: Optional[str] = None,
        config_section: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if config_file:
            self.add_context("config_file", config_file)
        if config_section:
            self.add_context("config_section", config_section)


class OutOfBoundsError(LinePivotError):
    """Raised when a requested range exceeds the document length.

    The command that received the range is aborted before any mutation,
    so the tree is left unchanged.
    """

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        length: Optional[int] = None,
        document_length: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if index is not None:
            self.add_context("index", index)
        if length is not None:
            self.add_context("length", length)
        if document_length is not None:
            self.add_context("document_length", document_length)


class RegionIntegrityError(LinePivotError):
    """Raised when a table region's boundaries disagree with the tree.

    Fatal to the current command only. Mutations already performed for
    earlier sub-ranges of the same command are not rolled back.
    """

    def __init__(
        self,
        message: str,
        node_id: Optional[int] = None,
        expected_length: Optional[int] = None,
        actual_length: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if node_id is not None:
            self.add_context("node_id", node_id)
        if expected_length is not None:
            self.add_context("expected_length", expected_length)
        if actual_length is not None:
            self.add_context("actual_length", actual_length)


class OverlayActionError(LinePivotError):
    """Raised when an overlay action (copy, download) fails.

    Caught at the action boundary: reported through the host notifier,
    never propagated past overlay teardown.
    """

    def __init__(
        self,
        message: str,
        action: Optional[str] = None,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if action:
            self.add_context("action", action)
        if url:
            self.add_context("url", url)
        if status_code is not None:
            self.add_context("status_code", status_code)


class DocumentLoadError(LinePivotError):
    """Raised when a source document cannot be loaded into a content tree."""

    def __init__(
        self,
        message: str,
        document_path: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if document_path:
            self.add_context("document_path", document_path)


# Convenience functions for creating common exception scenarios

def create_out_of_bounds_error(
    index: int, length: int, document_length: int
) -> OutOfBoundsError:
    """Create an out-of-bounds error with standard context."""
    error = OutOfBoundsError(
        message=(
            f"Range [{index}, {index + length}) exceeds document length "
            f"{document_length}"
        ),
        index=index,
        length=length,
        document_length=document_length,
    )
    error.add_recovery_suggestion("Refresh the selection before running the command")
    return error


def create_overlay_action_error(
    action: str,
    url: Optional[str] = None,
    original_error: Optional[Exception] = None,
    status_code: Optional[int] = None,
) -> OverlayActionError:
    """Create an overlay action error with the user-facing message."""
    error = OverlayActionError(
        message=f"{action.capitalize()} image failed",
        action=action,
        url=url,
        status_code=status_code,
    )

    if original_error:
        error.add_context("original_error", str(original_error))
        error.add_context("original_error_type", type(original_error).__name__)

    if action == "copy":
        error.add_recovery_suggestion("Check clipboard permissions")
        error.add_recovery_suggestion("Verify the image URL allows cross-origin access")
    else:
        error.add_recovery_suggestion("Verify the image URL is reachable")

    return error
