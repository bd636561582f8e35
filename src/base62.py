"""Base62 encoding for short link identifiers.

Identifiers are rendered over a fixed, order-significant alphabet of
digits, lowercase and uppercase letters.
"""

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
BASE = len(ALPHABET)

_INDEX = {char: index for index, char in enumerate(ALPHABET)}


def encode(n: int) -> str:
    """Encode a non-negative integer as a base62 string.

    Args:
        n: Value to encode

    Returns:
        Minimal-length base62 representation ("0" for zero)

    Raises:
        ValueError: If n is negative or not an integer
    """
    if not isinstance(n, int) or isinstance(n, bool):
        raise ValueError(f"Cannot encode non-integer value: {n!r}")
    if n < 0:
        raise ValueError(f"Cannot encode negative value: {n}")
    if n == 0:
        return ALPHABET[0]

    digits = []
    while n:
        n, remainder = divmod(n, BASE)
        digits.append(ALPHABET[remainder])

    return "".join(reversed(digits))


def decode(value: str) -> int:
    """Decode a base62 string back to its integer value.

    Args:
        value: Base62 string

    Returns:
        Decoded integer

    Raises:
        ValueError: If value is empty or contains characters outside the alphabet
    """
    if not value:
        raise ValueError("Cannot decode empty identifier")

    result = 0
    for char in value:
        if char not in _INDEX:
            raise ValueError(f"Invalid base62 character: {char!r}")
        result = result * BASE + _INDEX[char]

    return result
