import json
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

from blogvault.entities import Post
from blogvault.errors import ValidationError
from blogvault.schema_registry import (
    BASE_COLUMNS,
    REGISTRY,
    ChildCollectionSpec,
    ColumnSpec,
    SatelliteSpec,
)


def _decode_value(column: ColumnSpec, value: Any) -> Any:
    if value is None:
        return column.default
    if column.is_json and isinstance(value, str):
        return json.loads(value)
    if column.sql_type.endswith("[]"):
        return list(value)
    return value


def _encode_value(column: ColumnSpec, value: Any) -> Any:
    if column.is_json and value is not None:
        return json.dumps(value)
    return value


class PostTransformer:
    """Composition class mapping wide post rows to entities and payloads to columns"""

    def __init__(self, registry: Mapping[str, SatelliteSpec] = REGISTRY):
        self.registry = registry

    def spec_for(self, post_type: str) -> SatelliteSpec:
        spec = self.registry.get(post_type)
        if spec is None:
            raise ValidationError.for_field("type", f"Unknown post type '{post_type}'")
        return spec

    # Decoding

    def decode(self, row: Mapping[str, Any], children: Sequence[Any] = ()) -> Post:
        """Map one wide row (base columns plus every aliased satellite column)
        to its variant entity. Rows of an unregistered type keep only the base
        fields."""
        base = {column: row[column] for column in BASE_COLUMNS}
        base["draft"] = base["status"] == "draft"
        base["featured"] = bool(base["featured"])

        spec = self.registry.get(base["type"])
        if spec is None:
            return Post(**base)

        values = {
            column.field: _decode_value(column, row.get(spec.select_alias(column)))
            for column in spec.columns
        }
        return spec.entity.from_columns(base, values, list(children))

    def decode_rows(
        self, rows: Sequence[Mapping[str, Any]], children: Mapping[Any, list[Any]]
    ) -> list[Post]:
        return [self.decode(row, children.get(row["id"], ())) for row in rows]

    @staticmethod
    def decode_child(child: ChildCollectionSpec, row: Mapping[str, Any]) -> Any:
        values = {
            column.field: _decode_value(column, row.get(column.name))
            for column in child.columns
        }
        return child.item_entity.from_columns(values)

    # Encoding

    def encode_create(self, payload: BaseModel) -> dict[str, Any]:
        """Every satellite column: the provided value or the create default"""
        spec = self.spec_for(payload.type)
        data = {}
        for column in spec.columns:
            value = getattr(payload, column.field, None)
            if value is None:
                value = column.create_default
            data[column.name] = _encode_value(column, value)
        return data

    def encode_patch(self, post_type: str, changes: Mapping[str, Any]) -> dict[str, Any]:
        """Only the satellite columns whose field is present in ``changes``"""
        spec = self.spec_for(post_type)
        return {
            column.name: _encode_value(column, changes[column.field])
            for column in spec.columns
            if changes.get(column.field) is not None
        }

    @staticmethod
    def encode_children(
        child: ChildCollectionSpec, items: Sequence[Mapping[str, Any]], start: int = 0
    ) -> list[list[Any]]:
        """Child rows in input order. A missing position becomes the item's
        index (offset by ``start``)."""
        rows = []
        for index, item in enumerate(items):
            row = []
            for column in child.columns:
                value = item.get(column.field)
                if column.name == child.position_column and value is None:
                    value = start + index
                row.append(_encode_value(column, value))
            rows.append(row)
        return rows
