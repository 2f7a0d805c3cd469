"""Polymorphic post persistence for a personal blog, on asyncpg + pydantic"""

from blogvault.about_me_repository import AboutMeRepository
from blogvault.config import Settings, get_settings
from blogvault.db_context import Database, transactional
from blogvault.errors import (
    BlogVaultError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from blogvault.log_config import setup_logging
from blogvault.migrations import apply_schema
from blogvault.post_repository import PostRepository
from blogvault.repository import RepositoryConfig
from blogvault.service import AboutMeService, PostService

__all__ = [
    "AboutMeRepository",
    "AboutMeService",
    "BlogVaultError",
    "ConflictError",
    "Database",
    "NotFoundError",
    "PersistenceError",
    "PostRepository",
    "PostService",
    "RepositoryConfig",
    "Settings",
    "ValidationError",
    "apply_schema",
    "get_settings",
    "setup_logging",
    "transactional",
]
