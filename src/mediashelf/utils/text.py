"""Text normalization helpers."""

import unicodedata


def strip_accents(value: str) -> str:
    """Remove diacritical marks, keeping the base characters.

    Example:
        >>> strip_accents("Pokémon Adventures")
        'Pokemon Adventures'
    """
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(c for c in decomposed if not unicodedata.combining(c))
