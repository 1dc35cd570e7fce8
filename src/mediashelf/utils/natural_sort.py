"""Natural ("human") ordering for book and series names.

Digit runs compare by numeric value and letters compare case-insensitively,
so "Chapter 2" sorts before "Chapter 10" and "apple" before "Banana".
"""

import re

_DIGITS = re.compile(r"(\d+)", re.ASCII)


def natural_sort_key(value: str) -> tuple:
    """Build a sort key that orders strings naturally.

    Example:
        >>> sorted(["Chapter 10", "chapter 2", "Chapter 1"], key=natural_sort_key)
        ['Chapter 1', 'chapter 2', 'Chapter 10']
    """
    key = []
    # split() with a capture group alternates text, digits, text, ...
    for index, chunk in enumerate(_DIGITS.split(value)):
        if not chunk:
            continue
        if index % 2:
            key.append((0, int(chunk), ""))
        else:
            key.append((1, 0, chunk.casefold()))
    return tuple(key)


def natural_compare(a: str, b: str) -> int:
    """Compare two strings in natural order.

    Returns:
        A negative number, zero or a positive number, like ``cmp``.
    """
    key_a, key_b = natural_sort_key(a), natural_sort_key(b)
    return (key_a > key_b) - (key_a < key_b)
