"""
Utils module - Validation helpers.
"""

from htdb.utils.validators import (
    ValidationError,
    validate_database_path,
    validate_identifier,
    validate_string_map,
)

__all__ = [
    "ValidationError",
    "validate_database_path",
    "validate_identifier",
    "validate_string_map",
]
