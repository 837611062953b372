"""Allow-mask flags selecting which constructs may be accepted truncated."""

from __future__ import annotations

from enum import IntFlag


class Allow(IntFlag):
    """
    Selects which JSON constructs may be returned in truncated form.

    Members combine with ``|`` and can be inverted with ``~`` to disallow a
    single construct, e.g. ``Allow.ALL & ~Allow.OBJ`` or ``~Allow.STR``.
    Exact, complete literals never depend on the mask.
    """

    # "hello \u12 -> "hello "
    STR = 1
    # 123. -> 123
    NUM = 2
    # [1, 2, -> [1, 2]
    ARR = 4
    # {"a": 1, "b": -> {"a": 1}
    OBJ = 8
    # nu -> null
    NULL = 16
    # tr -> true, fa -> false
    BOOL = 32
    # Na -> NaN
    NAN = 64
    # Inf -> Infinity
    INFINITY = 128
    # -Inf -> -Infinity
    NEG_INFINITY = 256
    # Only the top-level object may be partial
    OUTERMOST_OBJ = 512
    # Only the top-level array may be partial
    OUTERMOST_ARR = 1024

    INF = INFINITY | NEG_INFINITY
    SPECIAL = NULL | BOOL | INF | NAN
    ATOM = STR | NUM | SPECIAL
    COLLECTION = ARR | OBJ
    ALL = ATOM | COLLECTION | OUTERMOST_OBJ | OUTERMOST_ARR


def normalize_mask(mask: int) -> Allow:
    """Coerces any integer to an Allow value, dropping undefined bits."""
    if isinstance(mask, bool) or not isinstance(mask, int):
        raise TypeError(
            f"allow must be an integer mask, not {type(mask).__name__}"
        )
    return Allow(int(mask) & Allow.ALL)
