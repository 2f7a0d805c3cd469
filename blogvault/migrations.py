"""
Schema DDL.

The ``posts`` table is written out by hand; every satellite and child table
is rendered from the schema registry so the DDL cannot drift from the
columns the queries select. All statements are idempotent.
"""

import logging
from collections.abc import Mapping

from blogvault.db_context import Database
from blogvault.schema_registry import (
    POSTS_TABLE,
    REGISTRY,
    SLUG_CONSTRAINT,
    ChildCollectionSpec,
    SatelliteSpec,
)

logger = logging.getLogger(__name__)

POSTS_DDL = f"""
CREATE TABLE IF NOT EXISTS {POSTS_TABLE} (
    id UUID PRIMARY KEY,
    insert_seq BIGINT GENERATED ALWAYS AS IDENTITY,
    slug TEXT NOT NULL,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'draft'
        CHECK (status IN ('draft', 'published', 'archived')),
    featured BOOLEAN NOT NULL DEFAULT FALSE,
    category TEXT,
    tags TEXT[],
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    published_at TIMESTAMPTZ,
    CONSTRAINT {SLUG_CONSTRAINT} UNIQUE (slug)
)
"""

POSTS_INDEXES = (
    f"CREATE INDEX IF NOT EXISTS posts_listing_idx ON {POSTS_TABLE} (created_at DESC, insert_seq DESC)",
    f"CREATE INDEX IF NOT EXISTS posts_type_idx ON {POSTS_TABLE} (type)",
    f"CREATE INDEX IF NOT EXISTS posts_tags_idx ON {POSTS_TABLE} USING GIN (tags)",
)

ABOUT_ME_DDL = (
    """
    CREATE TABLE IF NOT EXISTS about_me (
        id UUID PRIMARY KEY,
        name TEXT NOT NULL,
        title TEXT NOT NULL,
        location TEXT NOT NULL,
        bio TEXT NOT NULL,
        email TEXT NOT NULL,
        image_url TEXT NOT NULL,
        quote TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS about_me_skills (
        id BIGINT GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
        about_me_id UUID NOT NULL REFERENCES about_me(id) ON DELETE CASCADE,
        skill TEXT NOT NULL,
        sort_order INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS about_me_interests (
        id BIGINT GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
        about_me_id UUID NOT NULL REFERENCES about_me(id) ON DELETE CASCADE,
        interest TEXT NOT NULL,
        sort_order INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS about_me_socials (
        id BIGINT GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
        about_me_id UUID NOT NULL REFERENCES about_me(id) ON DELETE CASCADE,
        icon TEXT NOT NULL,
        href TEXT NOT NULL,
        label TEXT NOT NULL,
        sort_order INTEGER NOT NULL DEFAULT 0
    )
    """,
)


def satellite_ddl(spec: SatelliteSpec) -> str:
    columns = ",\n    ".join(f"{column.name} {column.sql_type}" for column in spec.columns)
    return (
        f"CREATE TABLE IF NOT EXISTS {spec.table} (\n"
        f"    id UUID PRIMARY KEY REFERENCES {POSTS_TABLE}(id) ON DELETE CASCADE,\n"
        f"    {columns}\n"
        ")"
    )


def child_ddl(child: ChildCollectionSpec, parent_table: str) -> list[str]:
    columns = ",\n    ".join(
        f"{column.name} {column.sql_type}{' NOT NULL' if column.required else ''}"
        for column in child.columns
    )
    order = ", ".join((child.parent_column, *child.order_by))
    return [
        f"CREATE TABLE IF NOT EXISTS {child.table} (\n"
        "    id BIGINT GENERATED ALWAYS AS IDENTITY PRIMARY KEY,\n"
        f"    {child.parent_column} UUID NOT NULL REFERENCES {parent_table}(id) ON DELETE CASCADE,\n"
        f"    {columns}\n"
        ")",
        f"CREATE INDEX IF NOT EXISTS {child.table}_order_idx ON {child.table} ({order})",
    ]


def render_schema(registry: Mapping[str, SatelliteSpec] = REGISTRY) -> list[str]:
    """Every CREATE statement, parents before children"""
    statements = [POSTS_DDL, *POSTS_INDEXES]
    for spec in registry.values():
        statements.append(satellite_ddl(spec))
        if spec.child:
            statements.extend(child_ddl(spec.child, spec.table))
    statements.extend(ABOUT_ME_DDL)
    return statements


async def apply_schema(db: Database) -> None:
    """Create any missing table in one transaction"""
    statements = render_schema()
    async with db.transaction() as conn:
        for statement in statements:
            await conn.execute(statement)
    logger.info("Schema applied (%d statements)", len(statements))
