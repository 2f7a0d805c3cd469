from collections.abc import Sequence
from typing import Any

from blogvault.database_operations import DatabaseOperations
from blogvault.post_queries import children_query
from blogvault.schema_registry import ChildCollectionSpec
from blogvault.transformer import PostTransformer


async def fetch_children(
    db_ops: DatabaseOperations, child: ChildCollectionSpec, parent_ids: Sequence[Any]
) -> dict[Any, list[Any]]:
    """Children of every given parent with a single query, grouped by parent id.

    Parents without children are absent from the result. No query is issued
    for an empty ``parent_ids``.
    """
    if not parent_ids:
        return {}

    rows = await db_ops.fetch_all(*children_query(child, parent_ids))
    grouped: dict[Any, list[Any]] = {}
    for row in rows:
        grouped.setdefault(row[child.parent_column], []).append(
            PostTransformer.decode_child(child, row)
        )
    return grouped
