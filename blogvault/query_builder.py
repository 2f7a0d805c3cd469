"""
Parameterized SQL builders.

``QueryBuilder`` produces SELECT statements; ``build_insert``,
``build_insert_many``, ``build_update`` and ``build_delete`` render write
statements. Nothing here executes SQL. Every value ends up in the params
list behind a positional ``$n`` placeholder; only identifiers supplied by
the calling code (never by request data) are written into the SQL text.
"""

import re
from collections.abc import Callable, Sequence
from typing import Any

_PARAM_PATTERN = re.compile(r"\$(\d+)")


class QueryBuilder:
    """
    Immutable query builder for SELECT statements.

    Usage:
        builder = QueryBuilder("posts p")
        query, params = builder.select("p.id").where("p.slug", slug).build()
    """

    def __init__(self, table_name: str):
        self.table_name = table_name
        self.select_fields = "*"
        self.joins: list[str] = []
        self.where_conditions: list[str] = []
        self.or_where_conditions: list[str] = []
        self.params: list[Any] = []
        self.order_by_parts: list[str] = []
        self.limit_count: int | None = None
        self.offset_count: int | None = None

    def _clone(self) -> "QueryBuilder":
        """Create a copy of the current QueryBuilder instance"""
        new_builder = QueryBuilder(self.table_name)
        new_builder.select_fields = self.select_fields
        new_builder.joins = self.joins.copy()
        new_builder.where_conditions = self.where_conditions.copy()
        new_builder.or_where_conditions = self.or_where_conditions.copy()
        new_builder.params = self.params.copy()
        new_builder.order_by_parts = self.order_by_parts.copy()
        new_builder.limit_count = self.limit_count
        new_builder.offset_count = self.offset_count
        return new_builder

    def _append(self, condition: str, is_or: bool) -> None:
        if is_or:
            self.or_where_conditions.append(condition)
        else:
            self.where_conditions.append(condition)

    def _add_condition(
        self, field: str, value: Any, operator: str, is_or: bool = False
    ) -> "QueryBuilder":
        """Add a condition to either WHERE or OR WHERE clauses"""
        new_builder = self._clone()

        # None compares with IS NULL / IS NOT NULL
        if value is None and operator == "=":
            condition = f"{field} IS NULL"
        elif value is None and operator in ("!=", "<>"):
            condition = f"{field} IS NOT NULL"
        else:
            new_builder.params.append(value)
            condition = f"{field} {operator} ${len(new_builder.params)}"

        new_builder._append(condition, is_or)
        return new_builder

    def _add_in_condition(
        self, field: str, values: Any | list[Any], is_or: bool = False
    ) -> "QueryBuilder":
        """Add an IN condition"""
        new_builder = self._clone()

        if not isinstance(values, (list, tuple)):
            values = [values]

        if not values:
            # IN () is not valid SQL; an empty set matches nothing
            new_builder._append("FALSE", is_or)
            return new_builder

        start_index = len(new_builder.params) + 1
        placeholders = ", ".join(f"${i + start_index}" for i in range(len(values)))
        new_builder._append(f"{field} IN ({placeholders})", is_or)
        new_builder.params.extend(values)
        return new_builder

    @staticmethod
    def _adjust_parameter_indices(condition: str, param_offset: int) -> str:
        """Shift every $n placeholder in a condition by param_offset"""
        return _PARAM_PATTERN.sub(
            lambda match: f"${param_offset + int(match.group(1))}", condition
        )

    def _build_group_condition(self, group_builder: "QueryBuilder") -> str:
        """Build a grouped condition string from a group builder"""
        param_offset = len(self.params)
        adjusted_where = [
            self._adjust_parameter_indices(c, param_offset)
            for c in group_builder.where_conditions
        ]
        adjusted_or_where = [
            self._adjust_parameter_indices(c, param_offset)
            for c in group_builder.or_where_conditions
        ]

        if adjusted_where and adjusted_or_where:
            return f"{' AND '.join(adjusted_where)} OR {' OR '.join(adjusted_or_where)}"
        if adjusted_or_where:
            return " OR ".join(adjusted_or_where)
        return " AND ".join(adjusted_where)

    def _add_group_condition(
        self,
        group_function: Callable[["QueryBuilder"], "QueryBuilder"],
        is_or: bool = False,
    ) -> "QueryBuilder":
        """Add a grouped condition to either WHERE or OR WHERE clauses"""
        group_builder = QueryBuilder("")
        result = group_function(group_builder)
        if result is not None:
            group_builder = result

        if not group_builder.where_conditions and not group_builder.or_where_conditions:
            return self

        new_builder = self._clone()
        new_builder._append(f"({self._build_group_condition(group_builder)})", is_or)
        new_builder.params.extend(group_builder.params)
        return new_builder

    def select(self, *fields: str) -> "QueryBuilder":
        """Set the SELECT fields. Defaults to * when none is provided."""
        new_builder = self._clone()
        new_builder.select_fields = ", ".join(fields) if fields else "*"
        return new_builder

    def left_join(self, table: str, alias: str, on: str) -> "QueryBuilder":
        """Add a LEFT JOIN. ``on`` is a fixed condition, never request data."""
        new_builder = self._clone()
        new_builder.joins.append(f"LEFT JOIN {table} {alias} ON {on}")
        return new_builder

    def where(
        self,
        field_or_function: str | Callable[["QueryBuilder"], "QueryBuilder"],
        *args: Any,
    ) -> "QueryBuilder":
        """Add a WHERE condition or grouped WHERE clause.

        Supports both of the following call styles:
        - where(field, value) -> operator defaults to '='
        - where(field, operator, value) -> explicit operator in the second place

        Grouped conditions via function: where(lambda qb: ...)
        """
        if callable(field_or_function):
            return self.where_group(field_or_function)

        if len(args) == 2:
            operator, value = args
            return self._add_condition(field_or_function, value, operator, is_or=False)
        if len(args) == 1:
            return self._add_condition(field_or_function, args[0], "=", is_or=False)
        raise TypeError("where() expects (field, value) or (field, operator, value)")

    def or_where(
        self,
        field_or_function: str | Callable[["QueryBuilder"], "QueryBuilder"],
        *args: Any,
    ) -> "QueryBuilder":
        """Add an OR WHERE condition or grouped OR WHERE clause."""
        if callable(field_or_function):
            return self._add_group_condition(field_or_function, is_or=True)

        if len(args) == 2:
            operator, value = args
            return self._add_condition(field_or_function, value, operator, is_or=True)
        if len(args) == 1:
            return self._add_condition(field_or_function, args[0], "=", is_or=True)
        raise TypeError("or_where() expects (field, value) or (field, operator, value)")

    def where_in(self, field: str, values: Any | list[Any]) -> "QueryBuilder":
        """Add a WHERE IN condition (OR of equalities)"""
        return self._add_in_condition(field, values)

    def where_contains(self, field: str, value: Any) -> "QueryBuilder":
        """Add an array containment condition: the text[] field includes value"""
        new_builder = self._clone()
        new_builder.params.append(value)
        new_builder._append(
            f"{field} @> ARRAY[${len(new_builder.params)}]::text[]", is_or=False
        )
        return new_builder

    def where_group(
        self, group_function: Callable[["QueryBuilder"], "QueryBuilder"]
    ) -> "QueryBuilder":
        """Add a grouped WHERE clause using a function"""
        return self._add_group_condition(group_function, is_or=False)

    def order_by(self, field: str) -> "QueryBuilder":
        """Add ORDER BY ascending for a field. Chain to add multiple fields."""
        new_builder = self._clone()
        new_builder.order_by_parts.append(field)
        return new_builder

    def order_by_desc(self, field: str) -> "QueryBuilder":
        """Add an ORDER BY ... DESC on the given field."""
        new_builder = self._clone()
        new_builder.order_by_parts.append(f"{field} DESC")
        return new_builder

    def limit(self, count: int) -> "QueryBuilder":
        new_builder = self._clone()
        new_builder.limit_count = count
        return new_builder

    def offset(self, count: int) -> "QueryBuilder":
        new_builder = self._clone()
        new_builder.offset_count = count
        return new_builder

    def paginate(self, page: int, per_page: int = 10) -> "QueryBuilder":
        """
        Set pagination parameters using a page-based interface

        Args:
            page: Page number (1-based)
            per_page: Number of records per page (default: 10)

        Returns:
            QueryBuilder with LIMIT and OFFSET set for the specified page
        """
        if page < 1:
            raise ValueError("Page number must be 1 or greater")
        if per_page < 1:
            raise ValueError("Per page count must be 1 or greater")

        return self.limit(per_page).offset((page - 1) * per_page)

    def _where_clause(self) -> str:
        where_parts = []

        if self.where_conditions:
            if len(self.where_conditions) == 1 or not self.or_where_conditions:
                where_parts.append(" AND ".join(self.where_conditions))
            else:
                where_parts.append(f"({' AND '.join(self.where_conditions)})")

        if self.or_where_conditions:
            if len(self.or_where_conditions) == 1:
                where_parts.append(self.or_where_conditions[0])
            else:
                where_parts.append(f"({' OR '.join(self.or_where_conditions)})")

        return " OR ".join(where_parts)

    def build(self) -> tuple[str, list[Any]]:
        """Build the final SQL query and parameters"""
        params = self.params.copy()
        query_parts = [f"SELECT {self.select_fields} FROM {self.table_name}"]
        query_parts.extend(self.joins)

        where_clause = self._where_clause()
        if where_clause:
            query_parts.append(f"WHERE {where_clause}")

        if self.order_by_parts:
            query_parts.append(f"ORDER BY {', '.join(self.order_by_parts)}")

        if self.limit_count is not None:
            params.append(self.limit_count)
            query_parts.append(f"LIMIT ${len(params)}")

        if self.offset_count is not None:
            params.append(self.offset_count)
            query_parts.append(f"OFFSET ${len(params)}")

        return " ".join(query_parts), params

    def to_sql(self) -> str:
        """Return only the SQL query string without parameters"""
        query, _ = self.build()
        return query

    def __str__(self) -> str:
        query, params = self.build()
        return f"Query: {query}\nParams: {params}"


def build_insert(
    table: str,
    data: dict[str, Any],
    returning: str | None = None,
    ignore_conflict_on: str | None = None,
) -> tuple[str, list[Any]]:
    """INSERT one row; column order follows the dict order.

    ``ignore_conflict_on`` adds ``ON CONFLICT (<columns>) DO NOTHING``.
    """
    if not data:
        raise ValueError("Cannot build an INSERT without columns")
    columns = ", ".join(data.keys())
    placeholders = ", ".join(f"${i + 1}" for i in range(len(data)))
    query = f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"
    if ignore_conflict_on:
        query += f" ON CONFLICT ({ignore_conflict_on}) DO NOTHING"
    if returning:
        query += f" RETURNING {returning}"
    return query, list(data.values())


def build_insert_many(
    table: str, columns: Sequence[str], rows: Sequence[Sequence[Any]]
) -> tuple[str, list[Any]]:
    """Multi-row INSERT; rows are inserted (and numbered) in the given order"""
    if not columns:
        raise ValueError("Cannot build an INSERT without columns")
    if not rows:
        raise ValueError("Cannot build a multi-row INSERT without rows")

    field_count = len(columns)
    rows_placeholders = []
    all_values: list[Any] = []

    for i, row in enumerate(rows):
        if len(row) != field_count:
            raise ValueError(f"Row {i} has {len(row)} values, expected {field_count}")
        all_values.extend(row)
        row_placeholders = ", ".join(
            f"${j + i * field_count + 1}" for j in range(field_count)
        )
        rows_placeholders.append(f"({row_placeholders})")

    query = (
        f"INSERT INTO {table} ({', '.join(columns)}) "
        f"VALUES {', '.join(rows_placeholders)}"
    )
    return query, all_values


def build_update(
    table: str,
    data: dict[str, Any],
    key_column: str,
    key_value: Any,
    returning: str | None = None,
) -> tuple[str, list[Any]] | None:
    """Partial UPDATE: ``SET col = $n`` only for the keys present in data.

    Returns None when data is empty so the caller can skip the statement.
    """
    if not data:
        return None

    set_clause = ", ".join(f"{column} = ${i + 1}" for i, column in enumerate(data))
    params = list(data.values())
    params.append(key_value)
    query = f"UPDATE {table} SET {set_clause} WHERE {key_column} = ${len(params)}"
    if returning:
        query += f" RETURNING {returning}"
    return query, params


def build_delete(
    table: str, key_column: str, key_value: Any, returning: str | None = None
) -> tuple[str, list[Any]]:
    query = f"DELETE FROM {table} WHERE {key_column} = $1"
    if returning:
        query += f" RETURNING {returning}"
    return query, [key_value]
