"""
Input size ceilings for regex work.

Every regex pass over caller-supplied text goes through these checks first.
Exceeding a ceiling raises InputTooLargeError instead of truncating, so a
refused search is never confused with a phrase that is absent.
"""

import re
from typing import List, Pattern, Union

# Ceiling on text handed to a single regex operation
MAX_REGEX_INPUT_LENGTH = 100_000


class InputTooLargeError(ValueError):
    """Raised when text exceeds the size allowed for a regex operation."""

    def __init__(self, length: int, max_length: int, what: str = "input"):
        self.length = length
        self.max_length = max_length
        super().__init__(
            f"Input too large: {what} is {length} characters (max: {max_length})"
        )


def validate_input_length(
    text: str,
    max_length: int = MAX_REGEX_INPUT_LENGTH,
    what: str = "input"
) -> None:
    """
    Check that text is small enough for a regex operation.

    Args:
        text: Text about to be scanned
        max_length: Maximum allowed length in characters
        what: Short description used in the error message

    Raises:
        InputTooLargeError: If len(text) > max_length
    """
    if len(text) > max_length:
        raise InputTooLargeError(len(text), max_length, what)


def safe_split(
    text: str,
    pattern: Union[str, Pattern[str]] = r"\s+",
    max_length: int = MAX_REGEX_INPUT_LENGTH
) -> List[str]:
    """re.split with a length check in front of it."""
    validate_input_length(text, max_length)
    return re.split(pattern, text)
