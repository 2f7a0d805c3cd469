"""Repository base class"""

import logging
from collections.abc import Sequence
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from blogvault.database_operations import DatabaseOperations
from blogvault.db_context import Database
from blogvault.features import PublishFeature, RepositoryFeature, TimestampFeature
from blogvault.query_builder import (
    build_delete,
    build_insert,
    build_insert_many,
    build_update,
)

logger = logging.getLogger(__name__)


def _default_features() -> list[RepositoryFeature]:
    return [TimestampFeature(), PublishFeature()]


class RepositoryConfig(BaseModel):
    """Configuration options for Repository"""

    model_config = {"arbitrary_types_allowed": True}

    features: list[RepositoryFeature] = Field(
        default_factory=_default_features,
        description="Hooks applied to every post row write",
    )
    slug_probe_limit: int = Field(
        default=100, ge=1, description="Numbered suffixes tried before the timestamp fallback"
    )
    slug_conflict_retries: int = Field(
        default=3, ge=0, description="Re-probes after a concurrent slug collision"
    )


class Repository:
    """Shared plumbing for the blogvault repositories.

    Holds the injected ``Database`` handle, the composed ``DatabaseOperations``
    and the feature hooks, and offers the small statement helpers the
    concrete repositories are written with. Every helper expects to run
    inside ``self.db.transaction()`` (normally via ``@transactional``).
    """

    def __init__(self, db: Database, config: RepositoryConfig | None = None):
        self.db = db
        self.config = config or RepositoryConfig()

        # Composition: Inject dependencies
        self.db_ops = DatabaseOperations(db)

    @staticmethod
    def coerce_id(value: Any) -> UUID | None:
        """Parse an id argument, or None when it is not a UUID at all"""
        if isinstance(value, UUID):
            return value
        try:
            return UUID(str(value))
        except ValueError:
            return None

    def _apply_create_features(self, data: dict[str, Any]) -> dict[str, Any]:
        for feature in self.config.features:
            data = feature.before_create(data)
        return data

    def _apply_update_features(
        self, data: dict[str, Any], current: dict[str, Any]
    ) -> dict[str, Any]:
        for feature in self.config.features:
            data = feature.before_update(data, current)
        return data

    async def _insert(
        self, table: str, data: dict[str, Any], returning: str | None = None, **kwargs
    ) -> Any:
        query, params = build_insert(table, data, returning=returning, **kwargs)
        if returning:
            return await self.db_ops.fetch_value(query, params)
        return await self.db_ops.execute_query(query, params)

    async def _insert_many(
        self, table: str, columns: Sequence[str], rows: Sequence[Sequence[Any]]
    ) -> None:
        if not rows:
            return
        await self.db_ops.execute_query(*build_insert_many(table, columns, rows))

    async def _update(
        self,
        table: str,
        data: dict[str, Any],
        key_value: Any,
        key_column: str = "id",
        returning: str | None = None,
    ) -> Any:
        """Partial update; a no-op (returning None) when data is empty"""
        statement = build_update(table, data, key_column, key_value, returning=returning)
        if statement is None:
            return None
        if returning:
            return await self.db_ops.fetch_value(*statement)
        return await self.db_ops.execute_query(*statement)

    async def _delete(
        self, table: str, key_value: Any, key_column: str = "id", returning: str | None = None
    ) -> Any:
        query, params = build_delete(table, key_column, key_value, returning=returning)
        if returning:
            return await self.db_ops.fetch_value(query, params)
        return await self.db_ops.execute_query(query, params)
