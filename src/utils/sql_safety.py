"""
SQL safety helpers for building id queries.

Table and column names cannot be bound as parameters, so they are
validated against a strict ASCII pattern and quoted per dialect. Values
always travel as bound parameters.
"""

import re
from typing import Literal

DbType = Literal["postgresql", "sqlserver"]

VALID_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
VALID_SCHEMA_TABLE = re.compile(
    r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)?$"
)

PLACEHOLDERS: dict[str, str] = {
    "postgresql": "%s",
    "sqlserver": "?",
}


def validate_identifier(identifier: str) -> None:
    """
    Validate a column or table name.

    Raises:
        ValueError: If the identifier is empty or contains anything other
            than ASCII letters, digits and underscores
    """
    if not identifier:
        raise ValueError("SQL identifier cannot be empty")

    if not VALID_IDENTIFIER.match(identifier):
        raise ValueError(
            f"Invalid SQL identifier: {identifier!r}. "
            "Only ASCII letters, digits, and underscores are allowed, "
            "and must start with a letter or underscore."
        )


def validate_schema_table(schema_table: str) -> None:
    """Validate ``table`` or ``schema.table``."""
    if not schema_table:
        raise ValueError("Schema.table identifier cannot be empty")

    if not VALID_SCHEMA_TABLE.match(schema_table):
        raise ValueError(
            f"Invalid schema.table identifier: {schema_table!r}. "
            "Only ASCII letters, digits, and underscores are allowed."
        )


def quote_identifier(identifier: str, db_type: DbType) -> str:
    """Validate and quote a single identifier."""
    validate_identifier(identifier)

    if db_type == "postgresql":
        return f'"{identifier}"'
    return f"[{identifier}]"


def quote_schema_table(schema_table: str, db_type: DbType) -> str:
    """Validate and quote ``table`` or ``schema.table``."""
    validate_schema_table(schema_table)

    return ".".join(quote_identifier(part, db_type) for part in schema_table.split("."))


def placeholder(db_type: DbType) -> str:
    """Bound parameter marker for the driver of ``db_type``."""
    try:
        return PLACEHOLDERS[db_type]
    except KeyError:
        raise ValueError(f"Unsupported database type: {db_type!r}") from None


def validate_integer_param(value: int, param_name: str, min_value: int = 0) -> None:
    """
    Validate an integer that ends up inside SQL text (LIMIT / TOP).

    Raises:
        ValueError: If ``value`` is not an int (bools rejected) or below ``min_value``
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Invalid {param_name}: {value!r}. Must be an integer.")

    if value < min_value:
        raise ValueError(f"Invalid {param_name}: {value}. Must be >= {min_value}.")
