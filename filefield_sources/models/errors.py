from __future__ import annotations

from filefield_sources.models.enums import ErrorKind


class FileSourceError(ValueError):
    kind: ErrorKind = ErrorKind.invalid_input

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = list(details or [])


class ResolutionError(FileSourceError):
    pass


class NotFoundError(ResolutionError):
    kind = ErrorKind.not_found


class IOFailureError(ResolutionError):
    kind = ErrorKind.io_failure


class InvalidInputError(ResolutionError):
    kind = ErrorKind.invalid_input


class UploadValidationError(FileSourceError):
    kind = ErrorKind.validation


class AccessDeniedError(FileSourceError):
    kind = ErrorKind.access_denied


class CapacityExceededError(FileSourceError):
    kind = ErrorKind.capacity_exceeded
