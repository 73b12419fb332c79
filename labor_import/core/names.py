"""
Worker name parsing for placeholder worker records.

The export writes names as either "Last, First" or "First Last", sometimes
with a generational suffix tacked on.
"""

from typing import NamedTuple

NAME_SUFFIXES = frozenset({"jr", "sr", "ii", "iii", "iv"})


class ParsedName(NamedTuple):
    first_name: str
    last_name: str


def _is_suffix(token: str) -> bool:
    return token.strip().strip(".,").lower() in NAME_SUFFIXES


def _strip_suffixes(text: str) -> str:
    return " ".join(token for token in text.split() if not _is_suffix(token))


def parse_worker_name(raw_name: str) -> ParsedName:
    """
    Split a free-text worker name into first and last components.

    Handles "Last, First" and "First Last" orderings and strips Jr., Sr.,
    II, III and IV. A single token is used for both fields.

    Args:
        raw_name: Name cell contents

    Returns:
        ParsedName(first_name, last_name)

    Raises:
        ValueError: If nothing usable remains after stripping

    Examples:
        >>> parse_worker_name("Lachance, Cory")
        ParsedName(first_name='Cory', last_name='Lachance')
        >>> parse_worker_name("Cory Lachance Jr.")
        ParsedName(first_name='Cory', last_name='Lachance')
    """
    text = " ".join((raw_name or "").split())
    if not text:
        raise ValueError("Worker name is empty")

    if "," in text:
        parts = [_strip_suffixes(part) for part in text.split(",")]
        parts = [part for part in parts if part]
        if not parts:
            raise ValueError(f"Worker name has no usable parts: {raw_name!r}")
        last_name = parts[0]
        first_name = parts[1] if len(parts) > 1 else last_name
        return ParsedName(first_name=first_name, last_name=last_name)

    tokens = [token for token in text.split() if not _is_suffix(token)]
    if not tokens:
        raise ValueError(f"Worker name has no usable parts: {raw_name!r}")
    if len(tokens) == 1:
        return ParsedName(first_name=tokens[0], last_name=tokens[0])
    return ParsedName(first_name=tokens[0], last_name=" ".join(tokens[1:]))
