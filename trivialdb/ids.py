from __future__ import annotations

import uuid
from typing import Any

BASE62_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"


def base62_encode(value: int) -> str:
    if value < 0:
        raise ValueError("base62_encode only supports non-negative integers")
    if value == 0:
        return BASE62_ALPHABET[0]
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 62)
        digits.append(BASE62_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_id(document: Any = None) -> str:
    """
    Generate a short, URL-safe id (ex: 'HrILY2JjA9s').

    64 random bits of a uuid4 are encoded in base 62, so ids are at most 11
    characters long. The document is ignored; it is accepted so this function
    has the same shape as a custom `id_func`.
    """
    return base62_encode(uuid.uuid4().int >> 64)
