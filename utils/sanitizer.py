"""
Input Sanitization Module

Cleans caller-supplied strings at the request boundary before they reach
the ledger, so names compare equal when matching ingredients and stored
notes stay bounded.
"""

import re

from constants import MAX_LENGTHS

_CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f-\x9f]')


def sanitize_text(text, max_length=10000):
    """
    Sanitize free text by stripping control characters and whitespace.

    Args:
        text: The text to sanitize (can be None)
        max_length: Maximum allowed length (default 10000)

    Returns:
        Sanitized string, truncated if necessary
    """
    if text is None:
        return ''

    if not isinstance(text, str):
        text = str(text)

    # Strip leading/trailing whitespace
    text = text.strip()

    # Remove control characters and null bytes
    text = _CONTROL_CHARS.sub('', text)

    # Truncate if too long
    if len(text) > max_length:
        text = text[:max_length]

    return text


def sanitize_name(name, max_length=MAX_LENGTHS['ingredient_name']):
    """
    Sanitize an ingredient, supplier or recipe name.

    Collapses runs of whitespace so that 'Plain  Flour' and 'Plain Flour'
    resolve to the same ingredient record.
    """
    if not name:
        return ''

    name = sanitize_text(name, max_length=max_length * 2)

    # Collapse multiple spaces
    name = re.sub(r'\s+', ' ', name)

    if len(name) > max_length:
        name = name[:max_length].rstrip()

    return name


def sanitize_notes(notes, max_length=MAX_LENGTHS['notes']):
    """Sanitize completion or movement notes, keeping newlines."""
    if not notes:
        return ''

    if not isinstance(notes, str):
        notes = str(notes)

    notes = notes.strip()
    notes = re.sub(r'[\x00-\x09\x0b-\x1f\x7f-\x9f]', '', notes)

    if len(notes) > max_length:
        notes = notes[:max_length]

    return notes


def sanitize_unit(unit, max_length=MAX_LENGTHS['unit']):
    """Sanitize a unit string; case is preserved for display."""
    return sanitize_name(unit, max_length=max_length)
