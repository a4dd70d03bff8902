from __future__ import annotations

import re
from functools import cmp_to_key
from typing import Iterable

# e.g. "12.moray.us-east.example.com" -> ("12", ".moray.us-east.example.com")
_LEADING_DIGITS = re.compile(r"\d*")


def split_subkey(key: str) -> tuple[int | None, str]:
    split_at = _LEADING_DIGITS.match(key).end()  # type: ignore[union-attr]
    digits, remainder = key[:split_at], key[split_at:]
    return (int(digits) if digits else None), remainder


def _cmp(left: object, right: object) -> int:
    return (left > right) - (left < right)  # type: ignore[operator]


def compare_subkeys(left: str, right: str) -> int:
    """Order shard-like keys by suffix first, then by numeric prefix.

    Keys without a numeric prefix fall back to plain string order, so two digit-less keys
    with the same suffix compare equal.
    """
    left_number, left_rest = split_subkey(left)
    right_number, right_rest = split_subkey(right)
    if left_rest != right_rest:
        return _cmp(left_rest, right_rest)
    if left_number is None or right_number is None:
        return _cmp(left, right)
    return _cmp(left_number, right_number)


def sort_subkeys(keys: Iterable[str]) -> list[str]:
    return sorted(keys, key=cmp_to_key(compare_subkeys))
