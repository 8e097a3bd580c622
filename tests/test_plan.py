"""Tests for migration planning.

Verifies statement ordering by type, FK-aware ordering of dropped and
created tables, the statements that follow a created table, rename
handling and the plan summary.
"""

import pytest

from schema_sync.migration.plan import (
    MigrationPlan,
    StatementType,
    _topological_sort,
    plan_migration,
)
from schema_sync.schema.comparator import compare_schemas
from schema_sync.schema.models import (
    CheckConstraint,
    Column,
    ForeignKeyConstraint,
    Index,
    Schema,
    SchemaDiff,
    Table,
    UniqueConstraint,
)


def _col(name: str, data_type: str = "int", **kwargs) -> Column:
    return Column(name=name, data_type=data_type, **kwargs)


def _pk(table: str) -> Index:
    return Index(name="PRIMARY", table_name=table, columns=["id"], is_unique=True, is_primary=True)


def _table(name: str, *columns: Column, indexes=None, constraints=None) -> Table:
    return Table(
        name=name,
        columns={c.name: c for c in columns},
        indexes=indexes or [],
        constraints={c.name: c for c in (constraints or [])},
    )


def _fk(name: str, table: str, column: str, referenced: str) -> ForeignKeyConstraint:
    return ForeignKeyConstraint(
        name=name,
        table_name=table,
        columns=[column],
        referenced_table=referenced,
        referenced_columns=["id"],
    )


def _blog() -> list[Table]:
    """users <- posts <- comments, each with a primary key."""
    users = _table("users", _col("id"), indexes=[_pk("users")])
    posts = _table(
        "posts",
        _col("id"),
        _col("user_id"),
        indexes=[_pk("posts"), Index(name="idx_user", table_name="posts", columns=["user_id"])],
        constraints=[
            _fk("fk_post_user", "posts", "user_id", "users"),
            CheckConstraint(name="ck_post_id", table_name="posts", expression="id > 0"),
        ],
    )
    comments = _table(
        "comments",
        _col("id"),
        _col("post_id"),
        indexes=[_pk("comments")],
        constraints=[_fk("fk_comment_post", "comments", "post_id", "posts")],
    )
    return [users, posts, comments]


class TestStatementType:
    """Tests for the statement type ordering."""

    def test_execution_order(self) -> None:
        """Renames run first and constraint additions last."""
        order = sorted(StatementType, key=lambda t: t.execution_order)
        assert order == [
            StatementType.RENAME_TABLE,
            StatementType.DROP_CONSTRAINT,
            StatementType.DROP_INDEX,
            StatementType.DROP_COLUMN,
            StatementType.DROP_TABLE,
            StatementType.CREATE_TABLE,
            StatementType.ADD_COLUMN,
            StatementType.MODIFY_COLUMN,
            StatementType.CREATE_INDEX,
            StatementType.ADD_CONSTRAINT,
        ]

    def test_destructive_types(self) -> None:
        """Only drops are destructive."""
        assert StatementType.DROP_TABLE.is_destructive
        assert StatementType.DROP_CONSTRAINT.is_destructive
        assert not StatementType.RENAME_TABLE.is_destructive
        assert not StatementType.MODIFY_COLUMN.is_destructive


class TestTopologicalSort:
    """Tests for FK dependency ordering."""

    def test_parents_first(self) -> None:
        """Referenced tables come before referencing tables."""
        deps = {"comments": {"posts"}, "posts": {"users"}, "users": set()}
        assert _topological_sort(deps, ["comments", "posts", "users"]) == [
            "users",
            "posts",
            "comments",
        ]

    def test_cycle_terminates(self) -> None:
        """A dependency cycle still yields every table once."""
        deps = {"a": {"b"}, "b": {"a"}}
        result = _topological_sort(deps, ["a", "b"])
        assert sorted(result) == ["a", "b"]

    def test_outside_tables_ignored(self) -> None:
        """Dependencies on tables outside the set do not matter."""
        assert _topological_sort({"a": {"zzz"}}, ["a"]) == ["a"]


class TestCreatedTables:
    """Tests for planning new tables."""

    def test_create_order_and_followups(self) -> None:
        """Parents are created first; indexes and FKs follow all creates."""
        plan = plan_migration(SchemaDiff(added_tables=sorted(_blog(), key=lambda t: t.name)))

        types = [(s.type, s.table_name) for s in plan.statements]
        assert types == [
            (StatementType.CREATE_TABLE, "users"),
            (StatementType.CREATE_TABLE, "posts"),
            (StatementType.CREATE_TABLE, "comments"),
            (StatementType.CREATE_INDEX, "posts"),
            (StatementType.ADD_CONSTRAINT, "comments"),
            (StatementType.ADD_CONSTRAINT, "posts"),
            (StatementType.ADD_CONSTRAINT, "posts"),
        ]
        assert plan.statements[3].sql == "CREATE INDEX `idx_user` ON `posts` (`user_id`)"
        assert "CHECK (id > 0)" in plan.statements[5].sql
        assert "FOREIGN KEY" in plan.statements[6].sql

    def test_unique_constraint_inlined(self) -> None:
        """Unique constraints are part of CREATE TABLE, not separate statements."""
        table = _table(
            "tags",
            _col("id"),
            _col("label", "varchar(50)"),
            constraints=[UniqueConstraint(name="uq_label", table_name="tags", columns=["label"])],
        )
        plan = plan_migration(SchemaDiff(added_tables=[table]))
        assert [s.type for s in plan.statements] == [StatementType.CREATE_TABLE]
        assert "UNIQUE KEY `uq_label` (`label`)" in plan.statements[0].sql


class TestDroppedTables:
    """Tests for planning dropped tables."""

    def test_children_dropped_first(self) -> None:
        """Referencing tables are dropped before the tables they reference."""
        plan = plan_migration(SchemaDiff(removed_tables=sorted(_blog(), key=lambda t: t.name)))
        assert plan.sql_statements() == [
            "DROP TABLE `comments`",
            "DROP TABLE `posts`",
            "DROP TABLE `users`",
        ]
        assert plan.has_destructive_operations
        assert plan.summary.tables_removed == 3
        assert len(plan.warnings) == 2

    def test_fk_cycle_broken_before_drop(self) -> None:
        """Tables referencing each other lose the closing FK before either is dropped."""
        a = _table(
            "a",
            _col("id"),
            _col("b_id"),
            indexes=[_pk("a")],
            constraints=[_fk("fk_a_b", "a", "b_id", "b")],
        )
        b = _table(
            "b",
            _col("id"),
            _col("a_id"),
            indexes=[_pk("b")],
            constraints=[_fk("fk_b_a", "b", "a_id", "a")],
        )
        plan = plan_migration(SchemaDiff(removed_tables=[a, b]))

        assert plan.sql_statements() == [
            "ALTER TABLE `b` DROP FOREIGN KEY `fk_b_a`",
            "DROP TABLE `a`",
            "DROP TABLE `b`",
        ]
        assert plan.summary.constraints_removed == 1

    def test_self_reference_needs_no_extra_drop(self) -> None:
        """A table referencing itself is dropped with a single statement."""
        tree = _table(
            "tree",
            _col("id"),
            _col("parent_id"),
            indexes=[_pk("tree")],
            constraints=[_fk("fk_parent", "tree", "parent_id", "tree")],
        )
        plan = plan_migration(SchemaDiff(removed_tables=[tree]))
        assert plan.sql_statements() == ["DROP TABLE `tree`"]


class TestModifiedTables:
    """Tests for planning changes to existing tables."""

    def _schemas(self) -> tuple[Schema, Schema]:
        target = Schema(
            name="app",
            tables={
                "users": _table(
                    "users",
                    _col("id"),
                    _col("nickname", "varchar(50)"),
                    _col("email", "varchar(100)"),
                    indexes=[_pk("users"), Index(name="idx_nick", table_name="users", columns=["nickname"])],
                ),
                "posts": _table(
                    "posts",
                    _col("id"),
                    _col("user_id"),
                    indexes=[_pk("posts")],
                    constraints=[_fk("fk_post_user", "posts", "user_id", "users")],
                ),
            },
        )
        source = Schema(
            name="app",
            tables={
                "users": _table(
                    "users",
                    _col("id"),
                    _col("email", "varchar(255)"),
                    _col("created_at", "datetime"),
                    indexes=[
                        _pk("users"),
                        Index(name="idx_email", table_name="users", columns=["email"], is_unique=True),
                    ],
                ),
                "posts": _table(
                    "posts",
                    _col("id"),
                    _col("user_id"),
                    indexes=[_pk("posts")],
                    constraints=[
                        ForeignKeyConstraint(
                            name="fk_post_user",
                            table_name="posts",
                            columns=["user_id"],
                            referenced_table="users",
                            referenced_columns=["id"],
                            on_delete="CASCADE",
                        )
                    ],
                ),
            },
        )
        return source, target

    def test_statement_order(self) -> None:
        """Drops come before additions; ties go by table name."""
        source, target = self._schemas()
        plan = plan_migration(compare_schemas(source, target))

        assert plan.sql_statements() == [
            "ALTER TABLE `posts` DROP FOREIGN KEY `fk_post_user`",
            "DROP INDEX `idx_nick` ON `users`",
            "ALTER TABLE `users` DROP COLUMN `nickname`",
            "ALTER TABLE `users` ADD COLUMN `created_at` datetime NULL",
            "ALTER TABLE `users` MODIFY COLUMN `email` varchar(255) NULL",
            "CREATE UNIQUE INDEX `idx_email` ON `users` (`email`)",
            "ALTER TABLE `posts` ADD CONSTRAINT `fk_post_user` FOREIGN KEY (`user_id`) "
            "REFERENCES `users` (`id`) ON DELETE CASCADE",
        ]

    def test_summary(self) -> None:
        """The summary counts each category."""
        source, target = self._schemas()
        plan = plan_migration(compare_schemas(source, target))
        summary = plan.summary

        assert summary.total_statements == 7
        assert summary.destructive_count == 3
        assert summary.columns_added == 1
        assert summary.columns_removed == 1
        assert summary.columns_modified == 1
        assert summary.indexes_added == 1
        assert summary.indexes_removed == 1
        assert summary.constraints_added == 1
        assert summary.constraints_removed == 1
        assert summary.tables_modified == 1

    def test_helpers(self) -> None:
        """Statements can be filtered by type and table."""
        source, target = self._schemas()
        plan = plan_migration(compare_schemas(source, target))

        assert len(plan.statements_for_table("posts")) == 2
        assert [s.sql for s in plan.statements_by_type(StatementType.DROP_COLUMN)] == [
            "ALTER TABLE `users` DROP COLUMN `nickname`"
        ]
        report = plan.format_summary()
        assert "Total statements: 7" in report
        assert "Destructive operations: 3" in report

    def test_primary_key_replaced(self) -> None:
        """A changed primary key is dropped early and added after columns."""
        target = Schema(name="app", tables={"t": _table("t", _col("id"), indexes=[_pk("t")])})
        source = Schema(
            name="app",
            tables={
                "t": _table(
                    "t",
                    _col("id"),
                    _col("uuid", "char(36)", is_nullable=False),
                    indexes=[Index(name="PRIMARY", table_name="t", columns=["uuid"], is_primary=True)],
                )
            },
        )
        plan = plan_migration(compare_schemas(source, target))
        assert plan.sql_statements() == [
            "ALTER TABLE `t` DROP PRIMARY KEY",
            "ALTER TABLE `t` ADD COLUMN `uuid` char(36) NOT NULL",
            "ALTER TABLE `t` ADD PRIMARY KEY (`uuid`)",
        ]

    def test_empty_diff(self) -> None:
        """An empty diff gives an empty plan."""
        plan = plan_migration(SchemaDiff())
        assert plan == MigrationPlan()
        assert not plan.has_destructive_operations


class TestRenames:
    """Tests for rename planning."""

    def test_rename_replaces_drop_and_create(self) -> None:
        """A rename pair becomes RENAME TABLE plus reconciliation."""
        old = _table(
            "customers",
            _col("id"),
            _col("name", "varchar(100)"),
            indexes=[_pk("customers"), Index(name="idx_name", table_name="customers", columns=["name"])],
        )
        new = _table(
            "clients",
            _col("id"),
            _col("name", "varchar(100)"),
            _col("vip", "tinyint", default="0"),
            indexes=[_pk("clients")],
        )
        diff = SchemaDiff(added_tables=[new], removed_tables=[old])

        plan = plan_migration(diff, {"customers": "clients"})

        assert plan.sql_statements() == [
            "RENAME TABLE `customers` TO `clients`",
            "DROP INDEX `idx_name` ON `clients`",
            "ALTER TABLE `clients` ADD COLUMN `vip` tinyint NULL DEFAULT '0'",
        ]
        assert plan.summary.tables_renamed == 1
        assert plan.summary.tables_added == 0
        assert plan.summary.tables_removed == 0

    def test_identical_rename(self) -> None:
        """Renaming an otherwise identical table needs one statement."""
        old = _table("customers", _col("id"), indexes=[_pk("customers")])
        new = _table("clients", _col("id"), indexes=[_pk("clients")])
        plan = plan_migration(SchemaDiff(added_tables=[new], removed_tables=[old]), {"customers": "clients"})
        assert plan.sql_statements() == ["RENAME TABLE `customers` TO `clients`"]
        assert not plan.has_destructive_operations

    def test_unknown_rename_rejected(self) -> None:
        """Renames must pair a removed table with an added table."""
        with pytest.raises(ValueError, match="does not match"):
            plan_migration(SchemaDiff(), {"a": "b"})
