"""Repository exports."""

from .base import RepositoryBase
from .content_repo import ContentBundle, ContentRepository, build_bundle, load_content_bundle

__all__ = [
    "ContentBundle",
    "ContentRepository",
    "RepositoryBase",
    "build_bundle",
    "load_content_bundle",
]
