from __future__ import annotations

from typing import Any


class RestaurantError(Exception):
    """Base class for errors surfaced to API callers and the importer."""

    status_code: int = 400
    message: str = "Bad Request"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return {"success": False, "message": self.message}


class MissingRequiredFieldError(RestaurantError):
    reason = "missing_required_field"

    def __init__(self, fields: list[str], row_index: int | None = None) -> None:
        self.fields = list(fields)
        self.row_index = row_index
        message = f"Missing required fields: {', '.join(self.fields)}"
        if row_index is not None:
            message = f"Row {row_index}: {message}"
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["errors"] = [f"{f} is required" for f in self.fields]
        return payload


class OutOfRangeError(RestaurantError):
    pass


class InvalidIdentifierError(RestaurantError):
    message = "Invalid ID format"


class NotFoundError(RestaurantError):
    status_code = 404
    message = "Restaurant not found"


class DuplicateKeyError(RestaurantError):
    message = "Error: This value must be unique"


class ValidationFailedError(RestaurantError):
    message = "Validation Error"

    def __init__(self, errors: list[str] | None = None, message: str | None = None) -> None:
        self.errors = list(errors or [])
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.errors:
            payload["errors"] = self.errors
        return payload


class MissingParameterError(ValidationFailedError):
    def __init__(self, parameter: str) -> None:
        self.parameter = parameter
        super().__init__(message=f"Missing search parameter: {parameter}")


class ImportSourceError(RestaurantError):
    """The tabular source could not be read; the whole import is aborted."""

    status_code = 500
