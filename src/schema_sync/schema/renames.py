"""Rename detection for added/removed table pairs.

A table that disappears from the target while a structurally similar table
appears in the source is more likely a rename than a drop plus a create.
The detector only suggests: it returns a ``{removed_name: added_name}``
mapping and leaves the ``SchemaDiff`` untouched.  A caller that chooses to
apply the mapping uses ``apply_table_renames`` to get the diff that remains
after RENAME TABLE.

Usage:
    from schema_sync.schema.renames import detect_renamed_tables

    renames = detect_renamed_tables(diff.added_tables, diff.removed_tables)
    # {"customers": "clients"}
"""

import logging

from schema_sync.schema.comparator import columns_equal, compare_table_indexes, compare_tables
from schema_sync.schema.models import Constraint, Index, SchemaDiff, Table, TableDiff

logger = logging.getLogger(__name__)

RENAME_SIMILARITY_THRESHOLD = 0.8


def table_similarity(a: Table, b: Table) -> float:
    """Fraction of identical columns between two tables (0.0 to 1.0).

    A column matches when both tables have a column of that name and the
    two columns are equal ignoring position.  The count is divided by the
    larger column count so that size differences lower the score.

    Examples:
        >>> empty = Table(name="a")
        >>> table_similarity(empty, Table(name="b"))
        1.0
    """
    if not a.columns and not b.columns:
        return 1.0
    if not a.columns or not b.columns:
        return 0.0

    matching = sum(
        1
        for name, column in a.columns.items()
        if name in b.columns and columns_equal(column, b.columns[name])
    )
    return matching / max(len(a.columns), len(b.columns))


def detect_renamed_tables(
    added_tables: list[Table],
    removed_tables: list[Table],
) -> dict[str, str]:
    """Suggest which removed tables were renamed to which added tables.

    Added tables are visited in name order.  For each, the best-scoring
    still-unmatched removed table (visited in name order, first one wins on
    a tie) is accepted when its score is strictly above
    ``RENAME_SIMILARITY_THRESHOLD``; an accepted removed table is not
    offered to later added tables.

    Args:
        added_tables: Tables present only in the source schema.
        removed_tables: Tables present only in the target schema.

    Returns:
        Mapping of removed table name to added table name.
    """
    renames: dict[str, str] = {}
    candidates = {table.name: table for table in removed_tables}

    for added in sorted(added_tables, key=lambda t: t.name):
        best_match: str | None = None
        best_score = 0.0

        for removed_name in sorted(candidates):
            score = table_similarity(added, candidates[removed_name])
            if score > RENAME_SIMILARITY_THRESHOLD and score > best_score:
                best_score = score
                best_match = removed_name

        if best_match is not None:
            logger.debug(
                f"Table '{best_match}' looks renamed to '{added.name}' "
                f"(similarity {best_score:.2f})"
            )
            renames[best_match] = added.name
            del candidates[best_match]

    return renames


def rebase_table(table: Table, new_name: str) -> Table:
    """Return a copy of *table* owned under *new_name*.

    Index and constraint ``table_name`` fields are rewritten so the copy can
    be compared against the renamed table.  Self-referencing foreign keys
    follow the rename, as MySQL's RENAME TABLE does.
    """
    constraints = {}
    for name, constraint in table.constraints.items():
        update = {"table_name": new_name}
        if getattr(constraint, "referenced_table", None) == table.name:
            update["referenced_table"] = new_name
        constraints[name] = constraint.model_copy(update=update)

    return Table(
        name=new_name,
        columns={name: col.model_copy() for name, col in table.columns.items()},
        indexes=[index.model_copy(update={"table_name": new_name}) for index in table.indexes],
        constraints=constraints,
    )


def apply_table_renames(diff: SchemaDiff, renames: dict[str, str]) -> SchemaDiff:
    """Fold renamed table pairs of *diff* into modified tables.

    Each ``{removed_name: added_name}`` pair leaves ``removed_tables`` and
    ``added_tables``.  The old table, rebased under its new name, is compared
    with the new table, and whatever still differs is listed like a change
    to an existing table.

    Args:
        diff: Diff from ``compare_schemas(source, target)``.
        renames: Mapping of removed table name to added table name.

    Returns:
        A new ``SchemaDiff``; *diff* itself is not modified.

    Raises:
        ValueError: If a pair does not name a removed and an added table.
    """
    added_by_name = {table.name: table for table in diff.added_tables}
    removed_by_name = {table.name: table for table in diff.removed_tables}

    for old_name, new_name in renames.items():
        if old_name not in removed_by_name or new_name not in added_by_name:
            raise ValueError(
                f"Rename {old_name} -> {new_name} does not match a removed/added table pair"
            )
    if not renames:
        return diff

    modified_tables: list[TableDiff] = list(diff.modified_tables)
    added_indexes: list[Index] = list(diff.added_indexes)
    removed_indexes: list[Index] = list(diff.removed_indexes)
    added_constraints: list[Constraint] = list(diff.added_constraints)
    removed_constraints: list[Constraint] = list(diff.removed_constraints)

    for old_name in sorted(renames):
        new_name = renames[old_name]
        desired = added_by_name[new_name]
        current = rebase_table(removed_by_name[old_name], new_name)

        table_diff = compare_tables(desired, current)
        if not table_diff.is_empty:
            modified_tables.append(table_diff)
            added_constraints.extend(table_diff.added_constraints)
            removed_constraints.extend(table_diff.removed_constraints)

        added, removed = compare_table_indexes(desired, current)
        added_indexes.extend(added)
        removed_indexes.extend(removed)

    renamed_to = set(renames.values())
    return SchemaDiff(
        added_tables=[t for t in diff.added_tables if t.name not in renamed_to],
        removed_tables=[t for t in diff.removed_tables if t.name not in renames],
        modified_tables=sorted(modified_tables, key=lambda d: d.table_name),
        added_indexes=added_indexes,
        removed_indexes=removed_indexes,
        added_constraints=added_constraints,
        removed_constraints=removed_constraints,
    )
