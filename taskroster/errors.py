"""Error types for taskroster.

`ApiError` subclasses are raised where a request is found to be invalid and
carry the HTTP status they map to. The `Document*` errors are raised by the
storage layer and translated to `BadRequest` responses by the API boundary.
"""

from typing import Any, Dict, Optional


class ApiError(Exception):
    """Error with an HTTP status, a message and an optional data payload."""

    status_code = 500

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.data = data or {}


class BadRequest(ApiError):
    status_code = 400


class NotFound(ApiError):
    status_code = 404


class InternalError(ApiError):
    status_code = 500

    def __init__(self, message: str = "Internal server error", data: Optional[Dict[str, Any]] = None):
        super().__init__(message, data)


class DocumentValidationError(ValueError):
    """A document failed schema validation (e.g. a required field is missing).

    Args:
        model_name: Name of the document kind ("User", "Task")
        errors: Map of field name to validation message
    """

    def __init__(self, model_name: str, errors: Dict[str, str]):
        self.model_name = model_name
        self.errors = dict(errors)
        details = ", ".join(f"{field}: {message}" for field, message in self.errors.items())
        super().__init__(f"{model_name} validation failed: {details}")


class DocumentCastError(ValueError):
    """A value could not be cast to the type of the field it targets."""

    def __init__(self, path: str, value: Any = None):
        self.path = path
        self.value = value
        super().__init__(f'Invalid value for field "{path}"')


class DuplicateKeyError(ValueError):
    """A write violated a unique index."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Duplicate value for unique field '{field}'")
