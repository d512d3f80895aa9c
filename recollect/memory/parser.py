"""
Remember-command parsing.

Extracts an explicit (key, value) instruction from free-form user text.
Patterns are tried in order and the first match wins, so the more specific
"remember my X is Y" form beats the generic "remember X is Y".
"""

import re
from typing import Optional

from recollect.core.types import RememberCommand

REMEMBER_PATTERNS = (
    re.compile(r"remember\s+(?:that\s+)?my\s+(.+?)\s+is\s+(.+)", re.IGNORECASE),
    re.compile(r"remember\s+(?:that\s+)?(.+?)\s+is\s+(.+)", re.IGNORECASE),
    re.compile(r"remember\s*:\s*(.+?)\s*[=-]\s*(.+)", re.IGNORECASE),
    re.compile(r"save\s+(?:that\s+)?my\s+(.+?)\s+is\s+(.+)", re.IGNORECASE),
    re.compile(r"my\s+(.+?)\s+is\s+(.+?)[.,]?\s*remember\s+(?:this|that)", re.IGNORECASE),
)


def parse_remember_command(text: str) -> Optional[RememberCommand]:
    """Return the first matching (key, value) instruction, or None."""
    if not text:
        return None
    for pattern in REMEMBER_PATTERNS:
        match = pattern.search(text)
        if match:
            key = match.group(1).strip()
            value = match.group(2).strip()
            if key and value:
                return RememberCommand(key=key, value=value)
    return None
