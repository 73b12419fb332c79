"""
Labor category classification.

Craft codes from the timekeeping export are matched by prefix against a
small static table to decide which cost bucket a newly discovered worker
belongs to. Anything that does not match lands in the direct bucket.
"""

from enum import Enum
from typing import Mapping, NamedTuple


class LaborCategory(str, Enum):
    """Cost-reporting bucket a worker's hours are charged to."""

    DIRECT = "direct"
    INDIRECT = "indirect"
    STAFF = "staff"

    @classmethod
    def parse(cls, value: "str | LaborCategory") -> "LaborCategory":
        """
        Coerce a stored or user-supplied value ("Direct", "staff", ...) to a category.

        Raises:
            ValueError: If the value names no known category
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for category in cls:
            if category.value == normalized:
                return category
        raise ValueError(f"Unknown labor category: {value!r}")


DEFAULT_CRAFT_PREFIXES: dict[str, LaborCategory] = {
    "STA": LaborCategory.STAFF,
    "IND": LaborCategory.INDIRECT,
    "DIR": LaborCategory.DIRECT,
}


class CraftClassification(NamedTuple):
    """Result of classifying a craft code."""

    category: LaborCategory
    recognized: bool


def classify_craft_code(
    craft_code: str | None,
    prefixes: Mapping[str, LaborCategory] | None = None,
) -> CraftClassification:
    """
    Infer a labor category from a craft code.

    Args:
        craft_code: Auxiliary code from the sheet (may be blank)
        prefixes: Prefix table; longest matching prefix wins

    Returns:
        CraftClassification. ``recognized`` is False when a non-blank code
        matched no prefix and the default arm was taken.
    """
    table = prefixes if prefixes is not None else DEFAULT_CRAFT_PREFIXES
    code = (craft_code or "").strip().upper()

    if not code:
        return CraftClassification(LaborCategory.DIRECT, True)

    for prefix in sorted(table, key=len, reverse=True):
        if code.startswith(prefix.upper()):
            return CraftClassification(LaborCategory.parse(table[prefix]), True)

    # Default arm: unknown codes are charged as direct labor
    return CraftClassification(LaborCategory.DIRECT, False)
