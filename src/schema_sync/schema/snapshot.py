"""JSON schema snapshots.

A snapshot is the ``Schema`` model dump written as JSON, so any extractor
that can read MySQL's INFORMATION_SCHEMA can feed the comparison:

    {
      "name": "shop",
      "tables": {
        "users": {
          "name": "users",
          "columns": {"id": {"name": "id", "data_type": "int", "is_nullable": false}},
          "indexes": [{"name": "PRIMARY", "table_name": "users", "columns": ["id"],
                       "is_unique": true, "is_primary": true}],
          "constraints": {}
        }
      },
      "indexes": {}
    }

Every loaded schema has passed ``Schema.validate()``.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from schema_sync.errors import SchemaValidationError
from schema_sync.schema.models import Schema

logger = logging.getLogger(__name__)


def parse_schema(data: dict[str, Any]) -> Schema:
    """Build and validate a ``Schema`` from snapshot data.

    Raises:
        SchemaValidationError: If the data does not match the snapshot shape
            (including an unknown constraint ``kind``) or the schema is
            structurally invalid.
    """
    if not isinstance(data, dict):
        raise SchemaValidationError(
            f"snapshot must be a JSON object, got {type(data).__name__}", "schema"
        )

    try:
        schema = Schema.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise SchemaValidationError(
            f"invalid snapshot at {location}: {first['msg']}",
            "schema",
            str(data.get("name", "")),
        ) from e

    schema.validate()
    return schema


def load_schema(path: str | Path) -> Schema:
    """Load a schema snapshot from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        SchemaValidationError: If the file is not valid JSON or not a valid schema.
    """
    snapshot_path = Path(path)
    if not snapshot_path.exists():
        raise FileNotFoundError(f"Schema snapshot not found: {snapshot_path}")

    try:
        data = json.loads(snapshot_path.read_text())
    except json.JSONDecodeError as e:
        raise SchemaValidationError(
            f"{snapshot_path} is not valid JSON: {e}", "schema", snapshot_path.stem
        ) from e

    schema = parse_schema(data)
    logger.debug(f"Loaded schema '{schema.name}' ({len(schema.tables)} tables) from {snapshot_path}")
    return schema


def dump_schema(schema: Schema, path: str | Path) -> None:
    """Write *schema* as a JSON snapshot readable by ``load_schema``."""
    Path(path).write_text(json.dumps(schema.model_dump(mode="json"), indent=2) + "\n")
