"""
Validation Utilities
====================

Input validation for database paths and identifiers.
"""

from __future__ import annotations

from pathlib import Path

from htdb.core.config import DATABASE_SUFFIX, ConfigError


class ValidationError(ValueError):
    """Raised when an identifier fails validation."""
    pass


def validate_database_path(path: str | Path) -> Path:
    """
    Validate that a path names a database file.

    Only the suffix is checked; the file does not need to exist.

    Args:
        path: The database file path

    Returns:
        The path as a Path object

    Raises:
        ConfigError: If the path does not end in '.ht'
    """
    if not str(path).endswith(DATABASE_SUFFIX):
        raise ConfigError(f"File path must include '{DATABASE_SUFFIX}': {path}")
    return Path(path)


def validate_identifier(
    value: str,
    max_length: int = 255,
    field_name: str = "value",
) -> str:
    """
    Validate a table or column name.

    Args:
        value: The name to validate
        max_length: Maximum allowed length
        field_name: Name of the field for error messages

    Returns:
        Validated name

    Raises:
        ValidationError: If validation fails
    """
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")

    if not value:
        raise ValidationError(f"{field_name} cannot be empty")

    if len(value) > max_length:
        raise ValidationError(
            f"{field_name} must be at most {max_length} characters"
        )

    if "\x00" in value:
        raise ValidationError(f"{field_name} contains invalid characters")

    return value


def validate_string_map(value: object, field_name: str = "value") -> dict[str, str]:
    """
    Validate a record, query or patch mapping.

    Args:
        value: Mapping of column names to string values
        field_name: Name of the argument for error messages

    Returns:
        A plain dict copy of the mapping

    Raises:
        ValidationError: If it is not a mapping of strings to strings
    """
    if not hasattr(value, "items"):
        raise ValidationError(f"{field_name} must be a mapping")

    result: dict[str, str] = {}
    for column, cell in value.items():
        if not isinstance(column, str) or not isinstance(cell, str):
            raise ValidationError(f"{field_name} keys and values must be strings")
        result[column] = cell
    return result
