"""Data layer utilities for loading content bundles."""

from .errors import DataError, DataLoadError, DataValidationError
from .json_loader import is_error_document, load_bundle_document, load_document
from .paths import get_definitions_path, get_repo_root

__all__ = [
    "DataError",
    "DataLoadError",
    "DataValidationError",
    "get_definitions_path",
    "get_repo_root",
    "is_error_document",
    "load_bundle_document",
    "load_document",
]
