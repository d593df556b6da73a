"""
Unit tests for SQL identifier validation and quoting

Tests verify:
- Identifier and schema.table validation
- Dialect-specific quoting
- Placeholder markers
- Integer validation for LIMIT / TOP values
"""

import pytest

from utils.sql_safety import (
    placeholder,
    quote_identifier,
    quote_schema_table,
    validate_identifier,
    validate_integer_param,
    validate_schema_table,
)


class TestValidateIdentifier:
    """Test validate_identifier"""

    @pytest.mark.parametrize("identifier", ["id", "post_id", "_private", "Table1"])
    def test_valid(self, identifier):
        validate_identifier(identifier)

    @pytest.mark.parametrize("identifier", [
        "",
        "1posts",
        "posts; DROP TABLE users",
        "id--",
        "na me",
        'id"',
        "posts.id",
        "café",
    ])
    def test_invalid(self, identifier):
        with pytest.raises(ValueError):
            validate_identifier(identifier)


class TestValidateSchemaTable:
    """Test validate_schema_table"""

    @pytest.mark.parametrize("name", ["posts", "public.posts", "dbo.wp_posts"])
    def test_valid(self, name):
        validate_schema_table(name)

    @pytest.mark.parametrize("name", ["", "a.b.c", "public.", ".posts", "posts]; --"])
    def test_invalid(self, name):
        with pytest.raises(ValueError):
            validate_schema_table(name)


class TestQuoting:
    """Test quote_identifier and quote_schema_table"""

    def test_postgres(self):
        assert quote_identifier("id", "postgresql") == '"id"'
        assert quote_schema_table("public.posts", "postgresql") == '"public"."posts"'

    def test_sqlserver(self):
        assert quote_identifier("id", "sqlserver") == "[id]"
        assert quote_schema_table("dbo.posts", "sqlserver") == "[dbo].[posts]"

    def test_quoting_validates(self):
        with pytest.raises(ValueError):
            quote_identifier("id; --", "postgresql")


class TestPlaceholder:
    """Test placeholder"""

    def test_markers(self):
        assert placeholder("postgresql") == "%s"
        assert placeholder("sqlserver") == "?"

    def test_unknown_db_type(self):
        with pytest.raises(ValueError, match="oracle"):
            placeholder("oracle")


class TestValidateIntegerParam:
    """Test validate_integer_param"""

    def test_valid(self):
        validate_integer_param(10, "limit", min_value=1)

    @pytest.mark.parametrize("value", ["10", 1.5, True, None])
    def test_non_integers(self, value):
        with pytest.raises(ValueError, match="limit"):
            validate_integer_param(value, "limit")

    def test_below_minimum(self):
        with pytest.raises(ValueError, match=">= 1"):
            validate_integer_param(0, "limit", min_value=1)
