"""
Input Sanitization Module
========================
Cleans client-supplied strings before they reach the store.

Features:
- Markup removal (script/style blocks dropped with their content, other tags stripped)
- Control character removal (newlines and tabs inside text are kept)
- Whitespace trimming and length validation
- Positive integer validation for query parameters
"""

import html
import re
from typing import Any, Optional


class InputSanitizer:
    """
    Input sanitization and validation utility.

    Every method raises ValueError with a human-readable reason; callers
    translate that into their own error type.
    """

    # Blocks whose content is never meaningful text
    _DROPPED_BLOCK_PATTERN = re.compile(
        r'<(script|style|iframe|object|embed)[^>]*>.*?</\1\s*>',
        re.IGNORECASE | re.DOTALL,
    )
    _TAG_PATTERN = re.compile(r'<[^>]*>')
    # C0/C1 control characters except tab, newline and carriage return
    _CONTROL_PATTERN = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]')

    @staticmethod
    def strip_markup(input_str: str) -> str:
        """Decode entities, then remove markup, leaving the visible text."""
        # Entity-encoded tags become real tags here and are stripped below
        text = html.unescape(input_str)
        text = InputSanitizer._DROPPED_BLOCK_PATTERN.sub('', text)
        return InputSanitizer._TAG_PATTERN.sub('', text)

    @staticmethod
    def sanitize_string(input_str: Any,
                        max_length: int = 1000,
                        allow_empty: bool = False) -> str:
        """
        Sanitize string input for safe storage.

        Args:
            input_str: Input value to sanitize
            max_length: Maximum allowed length after sanitization
            allow_empty: Whether an empty result is acceptable

        Returns:
            Sanitized, trimmed string

        Raises:
            ValueError: If input is not a string, empty, or too long
        """
        if input_str is None:
            raise ValueError("is required")
        if not isinstance(input_str, str):
            raise ValueError("must be a string")

        cleaned = InputSanitizer.strip_markup(input_str)
        cleaned = InputSanitizer._CONTROL_PATTERN.sub('', cleaned).strip()

        if not cleaned and not allow_empty:
            raise ValueError("must not be empty")

        if len(cleaned) > max_length:
            raise ValueError(f"too long: {len(cleaned)} > {max_length}")

        return cleaned

    @staticmethod
    def validate_positive_int(value: Any, max_val: Optional[int] = None) -> int:
        """
        Validate a positive integer such as a result limit.

        Raises:
            ValueError: If value is not an integer >= 1 (or exceeds max_val)
        """
        if isinstance(value, bool):
            raise ValueError("must be a positive integer")
        try:
            number = int(str(value).strip())
        except (TypeError, ValueError):
            raise ValueError("must be a positive integer")

        if number < 1:
            raise ValueError("must be a positive integer")

        if max_val is not None and number > max_val:
            raise ValueError(f"too large: {number} > {max_val}")

        return number
