"""Custom exceptions for content loading and validation."""


class DataError(Exception):
    """Base exception for the data layer."""


class DataLoadError(DataError):
    """Raised when content files are missing or cannot be parsed."""


class DataValidationError(DataError):
    """Raised when content fails structural validation."""
