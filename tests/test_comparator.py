"""Tests for schema comparison.

Verifies the added/removed/modified classification, the properties every
diff must satisfy (idempotence, symmetry, column partition) and the
remove-plus-add treatment of same-name indexes and constraints.
"""

import typing

from schema_sync.schema.comparator import (
    _compare_named,
    columns_equal,
    compare_schemas,
    compare_table_indexes,
    compare_tables,
    get_schema_stats,
)
from schema_sync.schema.models import (
    Column,
    ForeignKeyConstraint,
    Index,
    Schema,
    Table,
    UniqueConstraint,
)


def _col(name: str, data_type: str = "int", **kwargs) -> Column:
    return Column(name=name, data_type=data_type, **kwargs)


def _table(name: str, *columns: Column, indexes=None, constraints=None) -> Table:
    return Table(
        name=name,
        columns={c.name: c for c in columns},
        indexes=indexes or [],
        constraints={c.name: c for c in (constraints or [])},
    )


def _shop() -> Schema:
    users = _table(
        "users",
        _col("id", is_nullable=False, extra="auto_increment"),
        _col("email", "varchar(255)"),
        _col("name", "varchar(100)"),
        indexes=[Index(name="PRIMARY", table_name="users", columns=["id"], is_unique=True, is_primary=True)],
    )
    orders = _table(
        "orders",
        _col("id", is_nullable=False),
        _col("user_id"),
        _col("total", "decimal(10,2)"),
        indexes=[
            Index(name="PRIMARY", table_name="orders", columns=["id"], is_unique=True, is_primary=True),
            Index(name="idx_user", table_name="orders", columns=["user_id"]),
        ],
        constraints=[
            ForeignKeyConstraint(
                name="fk_user",
                table_name="orders",
                columns=["user_id"],
                referenced_table="users",
                referenced_columns=["id"],
            )
        ],
    )
    return Schema(name="shop", tables={"users": users, "orders": orders})


def _changed_shop() -> Schema:
    schema = _shop()
    users = schema.tables["users"]
    del users.columns["name"]
    users.columns["email"] = _col("email", "varchar(320)", is_nullable=False)
    users.columns["created_at"] = _col("created_at", "datetime")
    users.indexes.append(Index(name="idx_email", table_name="users", columns=["email"], is_unique=True))
    schema.tables["tags"] = _table("tags", _col("id"), _col("label", "varchar(50)"))
    del schema.tables["orders"]
    return schema


# ============================================================================
# Equality helpers
# ============================================================================


class TestEquality:
    """Tests for the column equality used by the comparison."""

    def test_position_ignored(self) -> None:
        """Columns differing only in position are equal."""
        assert columns_equal(_col("a", position=0), _col("a", position=7))

    def test_default_compared(self) -> None:
        """A different default makes columns unequal."""
        assert not columns_equal(_col("a", default="0"), _col("a", default=None))


# ============================================================================
# Table comparison
# ============================================================================


class TestCompareNamed:
    """Tests for the shared name-keyed comparison helper."""

    def test_added_removed_replaced(self) -> None:
        """Works on any value type given an equality function."""
        source = {"a": "1", "b": "2", "c": "3"}
        target = {"b": "2", "c": "changed", "d": "4"}

        added, removed = _compare_named(source, target, lambda x, y: x == y)

        assert added == ["1", "3"]
        assert removed == ["4", "changed"]

    def test_signature_annotated(self) -> None:
        """Parameters and the result pair are typed."""
        hints = typing.get_type_hints(_compare_named)
        assert set(hints) == {"source_map", "target_map", "equal", "return"}


class TestCompareTables:
    """Tests for compare_tables() and compare_table_indexes()."""

    def test_column_changes(self) -> None:
        """Added, removed and modified columns are reported in name order."""
        source = _table("t", _col("a"), _col("b", "bigint"), _col("d"), _col("c"))
        target = _table("t", _col("a"), _col("b"), _col("e"))

        diff = compare_tables(source, target)

        assert [c.name for c in diff.added_columns] == ["c", "d"]
        assert [c.name for c in diff.removed_columns] == ["e"]
        assert [d.column_name for d in diff.modified_columns] == ["b"]
        assert diff.modified_columns[0].old_column.data_type == "int"
        assert diff.modified_columns[0].new_column.data_type == "bigint"

    def test_position_only_change_is_empty(self) -> None:
        """Moving a column does not produce a diff."""
        source = _table("t", _col("a", position=1), _col("b", position=0))
        target = _table("t", _col("a", position=0), _col("b", position=1))
        assert compare_tables(source, target).is_empty

    def test_same_name_constraint_changed(self) -> None:
        """A same-name constraint with new columns is removed then added."""
        old = UniqueConstraint(name="uq", table_name="t", columns=["a"])
        new = UniqueConstraint(name="uq", table_name="t", columns=["a", "b"])
        source = _table("t", _col("a"), _col("b"), constraints=[new])
        target = _table("t", _col("a"), _col("b"), constraints=[old])

        diff = compare_tables(source, target)

        assert diff.removed_constraints == [old]
        assert diff.added_constraints == [new]

    def test_same_name_index_changed(self) -> None:
        """A same-name index with a new column order is removed then added."""
        old = Index(name="idx", table_name="t", columns=["a", "b"])
        new = Index(name="idx", table_name="t", columns=["b", "a"])
        added, removed = compare_table_indexes(
            _table("t", _col("a"), _col("b"), indexes=[new]),
            _table("t", _col("a"), _col("b"), indexes=[old]),
        )
        assert added == [new]
        assert removed == [old]


# ============================================================================
# Schema comparison
# ============================================================================


class TestCompareSchemas:
    """Tests for compare_schemas()."""

    def test_identical_schemas_give_empty_diff(self) -> None:
        """compare(A, A) is empty."""
        assert compare_schemas(_shop(), _shop()).is_empty

    def test_tables_classified(self) -> None:
        """Tables only in source are added, only in target removed."""
        diff = compare_schemas(_changed_shop(), _shop())
        assert [t.name for t in diff.added_tables] == ["tags"]
        assert [t.name for t in diff.removed_tables] == ["orders"]
        assert [t.table_name for t in diff.modified_tables] == ["users"]

    def test_removed_table_constraints_not_listed(self) -> None:
        """Constraints and indexes of removed tables travel with the table."""
        diff = compare_schemas(_changed_shop(), _shop())
        assert diff.removed_constraints == []
        assert all(index.table_name != "orders" for index in diff.removed_indexes)

    def test_common_table_indexes(self) -> None:
        """Index changes of common tables are flattened into the diff."""
        diff = compare_schemas(_changed_shop(), _shop())
        assert [i.name for i in diff.added_indexes] == ["idx_email"]
        assert diff.removed_indexes == []

    def test_constraints_flattened(self) -> None:
        """Constraint changes of modified tables appear at schema level."""
        source = _shop()
        del source.tables["orders"].constraints["fk_user"]
        diff = compare_schemas(source, _shop())
        assert [c.name for c in diff.removed_constraints] == ["fk_user"]
        assert diff.get_table_diff("orders").removed_constraints[0].name == "fk_user"

    def test_unchanged_tables_omitted(self) -> None:
        """Tables with identical columns and constraints are not modified."""
        diff = compare_schemas(_changed_shop(), _shop())
        assert diff.get_table_diff("tags") is None

    def test_symmetry(self) -> None:
        """Swapping the arguments swaps added and removed in every category."""
        a, b = _changed_shop(), _shop()
        forward = compare_schemas(a, b)
        backward = compare_schemas(b, a)

        assert forward.added_tables == backward.removed_tables
        assert forward.removed_tables == backward.added_tables
        assert forward.added_indexes == backward.removed_indexes
        assert forward.removed_indexes == backward.added_indexes
        assert forward.added_constraints == backward.removed_constraints

        fwd_users = forward.get_table_diff("users")
        back_users = backward.get_table_diff("users")
        assert fwd_users.added_columns == back_users.removed_columns
        assert fwd_users.removed_columns == back_users.added_columns
        assert [d.new_column for d in fwd_users.modified_columns] == [
            d.old_column for d in back_users.modified_columns
        ]

    def test_column_partition(self) -> None:
        """Every column of a common table lands in exactly one category."""
        source, target = _changed_shop(), _shop()
        table_diff = compare_schemas(source, target).get_table_diff("users")

        added = {c.name for c in table_diff.added_columns}
        removed = {c.name for c in table_diff.removed_columns}
        modified = {d.column_name for d in table_diff.modified_columns}
        source_cols = set(source.tables["users"].columns)
        target_cols = set(target.tables["users"].columns)
        unchanged = {
            name
            for name in source_cols & target_cols
            if columns_equal(source.tables["users"].columns[name], target.tables["users"].columns[name])
        }

        assert added == {"created_at"}
        assert removed == {"name"}
        assert modified == {"email"}
        assert not (added & removed) and not (added & modified) and not (removed & modified)
        assert added | removed | modified | unchanged == source_cols | target_cols

    def test_deterministic(self) -> None:
        """The same inputs always produce the same serialised diff."""
        first = compare_schemas(_changed_shop(), _shop()).model_dump(mode="json")
        second = compare_schemas(_changed_shop(), _shop()).model_dump(mode="json")
        assert first == second

    def test_schema_level_indexes(self) -> None:
        """Schema-level indexes are compared by name."""
        source = Schema(
            name="s", indexes={"g": Index(name="g", table_name="users", columns=["id"])}
        )
        diff = compare_schemas(source, Schema(name="t"))
        assert [i.name for i in diff.added_indexes] == ["g"]


class TestSchemaStats:
    """Tests for get_schema_stats()."""

    def test_counts(self) -> None:
        """Tables, columns, indexes and constraints are counted."""
        stats = get_schema_stats(_shop())
        assert stats == {
            "tables": 2,
            "columns": 6,
            "indexes": 3,
            "constraints": 1,
            "global_indexes": 0,
        }
