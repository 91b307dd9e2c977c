"""Masking of sensitive property values."""

import logging
import re
from typing import List, Pattern

from .conversions import split_trimmed
from .keys import REDACTED_TEXT, SENSITIVE_CONFIG_KEYS_DEFAULT

logger = logging.getLogger(__name__)


class Redactor:
    """Replaces values of sensitive keys with a fixed mask.

    A key is sensitive when any of the configured regular expressions is
    found in its name.

    Attributes:
        patterns: Compiled sensitive-key expressions
    """

    def __init__(self, expressions: str | None = None) -> None:
        """Initialize the redactor.

        Args:
            expressions: Comma-separated regular expressions; None uses the defaults
        """
        if expressions is None:
            expressions = SENSITIVE_CONFIG_KEYS_DEFAULT
        self.patterns: List[Pattern[str]] = []
        for expression in split_trimmed(expressions):
            try:
                self.patterns.append(re.compile(expression))
            except re.error as e:
                logger.warning(f"Ignoring invalid sensitive key pattern {expression!r}: {e}")

    def is_sensitive(self, key: str) -> bool:
        return any(pattern.search(key) for pattern in self.patterns)

    def redact(self, key: str, value: str | None) -> str | None:
        """Return the mask for sensitive keys, else the value unchanged."""
        if value is not None and self.is_sensitive(key):
            return REDACTED_TEXT
        return value
