"""Exception types shared across the content generation service."""


class ContentGenError(Exception):
    """Base class for service errors."""


class InputValidationError(ContentGenError):
    """Raised when a request is rejected before any model call."""


class CompletionError(ContentGenError):
    """Raised when the completion backend fails or returns nothing usable."""


class JSONRepairError(ContentGenError, ValueError):
    """Raised when model output cannot be rewritten into strict JSON."""


class WorkflowError(ContentGenError):
    """Raised when a review workflow action cannot be applied."""
