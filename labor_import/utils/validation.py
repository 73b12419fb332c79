"""
Input validation utilities for the labor import CLI.

Provides reusable validation functions for command-line inputs like
import IDs, project IDs, actor names and workbook paths so bad input is
rejected before a database connection is opened.
"""

import re
from pathlib import Path
from uuid import UUID


class ValidationError(ValueError):
    """Raised when input validation fails."""
    pass


def validate_uuid(value: str, field_name: str = "id") -> UUID:
    """
    Validate a UUID string.

    Args:
        value: The UUID text to validate
        field_name: Name of the field (for error messages)

    Returns:
        The parsed UUID

    Raises:
        ValidationError: If validation fails

    Examples:
        >>> validate_uuid("6f1c2a7e-8a55-4f7c-9c1e-5b0f5b8f2d11")
        UUID('6f1c2a7e-8a55-4f7c-9c1e-5b0f5b8f2d11')
        >>> validate_uuid("not-a-uuid")  # doctest: +SKIP
        ValidationError: id must be a valid UUID
    """
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    try:
        return UUID(value.strip())
    except ValueError as e:
        raise ValidationError(f"{field_name} must be a valid UUID, got {value!r}") from e


def validate_actor(actor: str, field_name: str = "actor") -> str:
    """
    Validate the actor recorded on imports and audit entries.

    Actors are user identifiers or e-mail addresses: alphanumeric plus
    '.', '_', '-' and '@'.

    Args:
        actor: The actor to validate
        field_name: Name of the field (for error messages)

    Returns:
        The validated actor (stripped of whitespace)

    Raises:
        ValidationError: If validation fails

    Examples:
        >>> validate_actor("jane.doe@example.com")
        'jane.doe@example.com'
        >>> validate_actor("user 42")  # doctest: +SKIP
        ValidationError: actor contains invalid characters
    """
    if not actor or not isinstance(actor, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    actor = actor.strip()

    if not actor:
        raise ValidationError(f"{field_name} cannot be empty or whitespace-only")

    if not re.match(r'^[a-zA-Z0-9_\-\.@]+$', actor):
        raise ValidationError(
            f"{field_name} contains invalid characters. "
            "Only alphanumeric, hyphens, underscores, dots and @ are allowed."
        )

    if len(actor) > 255:
        raise ValidationError(f"{field_name} exceeds maximum length of 255 characters")

    return actor


def validate_limit(limit: int, field_name: str = "limit", max_limit: int = 1000) -> int:
    """
    Validate a limit parameter for history queries.

    Args:
        limit: The limit value to validate
        field_name: Name of the field (for error messages)
        max_limit: Maximum allowed limit value

    Returns:
        The validated limit value

    Raises:
        ValidationError: If validation fails

    Examples:
        >>> validate_limit(10)
        10
        >>> validate_limit(0)  # doctest: +SKIP
        ValidationError: limit must be a positive integer
    """
    if not isinstance(limit, int) or isinstance(limit, bool):
        raise ValidationError(f"{field_name} must be an integer, got {type(limit).__name__}")

    if limit <= 0:
        raise ValidationError(f"{field_name} must be a positive integer, got {limit}")

    if limit > max_limit:
        raise ValidationError(f"{field_name} exceeds maximum of {max_limit}")

    return limit


def validate_workbook_path(file_path: str, field_name: str = "input") -> Path:
    """
    Validate the path of a workbook to import.

    Prevents path traversal and requires an existing .xlsx/.xlsm file.

    Args:
        file_path: The file path to validate
        field_name: Name of the field (for error messages)

    Returns:
        The validated path

    Raises:
        ValidationError: If validation fails

    Examples:
        >>> validate_workbook_path("../../etc/passwd")  # doctest: +SKIP
        ValidationError: input contains path traversal characters (..)
    """
    if not file_path or not isinstance(file_path, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    file_path = file_path.strip()

    if not file_path:
        raise ValidationError(f"{field_name} cannot be empty or whitespace-only")

    if ".." in Path(file_path).parts:
        raise ValidationError(f"{field_name} contains path traversal characters (..)")

    if "\x00" in file_path:
        raise ValidationError(f"{field_name} contains null bytes")

    if len(file_path) > 4096:  # Linux PATH_MAX
        raise ValidationError(f"{field_name} exceeds maximum length of 4096 characters")

    path = Path(file_path)
    if path.suffix.lower() not in (".xlsx", ".xlsm"):
        raise ValidationError(f"{field_name} must be an .xlsx or .xlsm workbook, got {path.name!r}")

    if not path.is_file():
        raise ValidationError(f"{field_name} not found: {file_path}")

    return path
