"""Error taxonomy shared by the store, clients and pipeline."""

from __future__ import annotations


class AppError(Exception):
    """Base application error carrying a machine code and an HTTP status."""

    def __init__(self, message: str, code: str = "UNKNOWN_ERROR", status: int = 500):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status


class ValidationError(AppError):
    """Bad user input. Recoverable, surfaced to the user as a formatted reply."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, code="VALIDATION_ERROR", status=400)
        self.details = details or {}


class ApiError(AppError):
    """An upstream dependency (weather, LLM, chart, push) failed."""

    def __init__(self, message: str, service: str, original: Exception | None = None):
        super().__init__(message, code="API_ERROR", status=502)
        self.service = service
        self.original = original


class ConfigurationError(AppError):
    """A credential required by a client is missing. Raised on first use."""

    def __init__(self, message: str):
        super().__init__(message, code="CONFIGURATION_ERROR", status=500)


class ForecastError(AppError):
    """The forecast does not contain the data the pipeline needs."""

    def __init__(self, message: str):
        super().__init__(message, code="FORECAST_ERROR", status=502)


class StorageError(AppError):
    """The preferences file exists but cannot be read or parsed."""

    def __init__(self, message: str, path: str):
        super().__init__(message, code="STORAGE_ERROR", status=500)
        self.path = path
