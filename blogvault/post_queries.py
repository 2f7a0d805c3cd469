"""
SELECT statements for posts.

The list/get queries select the base columns plus every registered
satellite column (aliased ``<type>__<column>``) through one LEFT JOIN per
satellite table; at most one satellite matches any row.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from blogvault.payloads import PostFilters
from blogvault.query_builder import QueryBuilder
from blogvault.schema_registry import (
    BASE_COLUMNS,
    POSTS_ALIAS,
    POSTS_TABLE,
    REGISTRY,
    ChildCollectionSpec,
    SatelliteSpec,
)

_FROM = f"{POSTS_TABLE} {POSTS_ALIAS}"


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text matches literally"""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def select_fields(registry: Mapping[str, SatelliteSpec] = REGISTRY) -> list[str]:
    fields = [f"{POSTS_ALIAS}.{column}" for column in BASE_COLUMNS]
    for spec in registry.values():
        fields.extend(
            f"{spec.alias}.{column.name} AS {spec.select_alias(column)}"
            for column in spec.columns
        )
    return fields


def full_select(registry: Mapping[str, SatelliteSpec] = REGISTRY) -> QueryBuilder:
    """Base columns plus every satellite column, one LEFT JOIN per type"""
    builder = QueryBuilder(_FROM).select(*select_fields(registry))
    for spec in registry.values():
        builder = builder.left_join(
            spec.table,
            spec.alias,
            f"{POSTS_ALIAS}.id = {spec.alias}.id AND {POSTS_ALIAS}.type = '{spec.post_type}'",
        )
    return builder


def apply_filters(builder: QueryBuilder, filters: PostFilters) -> QueryBuilder:
    """AND together every filter that is set"""
    if filters.types:
        builder = builder.where_in(f"{POSTS_ALIAS}.type", filters.types)
    if filters.status:
        builder = builder.where(f"{POSTS_ALIAS}.status", filters.status)
    if filters.featured is not None:
        builder = builder.where(f"{POSTS_ALIAS}.featured", filters.featured)
    if filters.category:
        builder = builder.where(f"{POSTS_ALIAS}.category", filters.category)
    if filters.tag:
        builder = builder.where_contains(f"{POSTS_ALIAS}.tags", filters.tag)
    if filters.q:
        pattern = f"%{escape_like(filters.q)}%"
        builder = builder.where_group(
            lambda group: group.where(f"{POSTS_ALIAS}.title", "ILIKE", pattern).or_where(
                f"{POSTS_ALIAS}.slug", "ILIKE", pattern
            )
        )
    return builder


def list_query(
    filters: PostFilters, registry: Mapping[str, SatelliteSpec] = REGISTRY
) -> tuple[str, list[Any]]:
    """One page of posts, newest first; insertion order breaks ties"""
    return (
        apply_filters(full_select(registry), filters)
        .order_by_desc(f"{POSTS_ALIAS}.created_at")
        .order_by_desc(f"{POSTS_ALIAS}.insert_seq")
        .paginate(filters.page, filters.limit)
        .build()
    )


def count_query(filters: PostFilters) -> tuple[str, list[Any]]:
    """Same predicates as ``list_query``, no joins and no pagination"""
    return apply_filters(QueryBuilder(_FROM).select("COUNT(*)"), filters).build()


def get_query(
    id_or_slug: str, registry: Mapping[str, SatelliteSpec] = REGISTRY
) -> tuple[str, list[Any]]:
    return (
        full_select(registry)
        .where_group(
            lambda group: group.where(f"{POSTS_ALIAS}.id::text", str(id_or_slug)).or_where(
                f"{POSTS_ALIAS}.slug", str(id_or_slug)
            )
        )
        .limit(1)
        .build()
    )


def current_state_query(post_id: Any) -> tuple[str, list[Any]]:
    """The columns an update needs before writing"""
    return (
        QueryBuilder(POSTS_TABLE)
        .select("id", "type", "status", "published_at")
        .where("id", post_id)
        .build()
    )


def slug_exists_query(slug: str) -> tuple[str, list[Any]]:
    return (
        QueryBuilder(POSTS_TABLE).select("1").where("slug", slug).limit(1).build()
    )


def children_query(
    child: ChildCollectionSpec, parent_ids: Sequence[Any]
) -> tuple[str, list[Any]]:
    """Child rows of many parents in one statement, in display order"""
    builder = (
        QueryBuilder(child.table)
        .select(child.parent_column, *(column.name for column in child.columns))
        .where_in(child.parent_column, list(parent_ids))
    )
    for column in child.order_by:
        builder = builder.order_by(column)
    return builder.build()


def next_position_query(child: ChildCollectionSpec, parent_id: Any) -> tuple[str, list[Any]]:
    """Position after the parent's last child (0 when it has none)"""
    return (
        QueryBuilder(child.table)
        .select(f"COALESCE(MAX({child.position_column}), -1) + 1")
        .where(child.parent_column, parent_id)
        .build()
    )
