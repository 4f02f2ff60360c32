from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import Any, List


class _Raw(str):
    """Already-serialized text waiting on the work stack."""


def _scalar(value: Any) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, int):
        return str(int(value))
    if isinstance(value, float):
        if not math.isfinite(value):
            return "null"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return json.dumps(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    raise TypeError(f"not a JSON value: {type(value).__name__}")


def canonicalize(value: Any) -> str:
    """Serialize a JSON value deterministically.

    Mapping keys are sorted, sequence order is kept, and no whitespace is
    emitted, so two values are structurally equal iff their canonical forms
    are identical. Works with an explicit stack, so deeply nested documents
    do not hit the recursion limit.
    """
    out: List[str] = []
    stack: List[Any] = [value]
    while stack:
        item = stack.pop()
        if isinstance(item, _Raw):
            out.append(item)
        elif isinstance(item, Mapping):
            keys = list(item.keys())
            for k in keys:
                if not isinstance(k, str):
                    raise TypeError(f"mapping key must be str, got {type(k).__name__}")
            parts: List[Any] = [_Raw("{")]
            for i, k in enumerate(sorted(keys)):
                if i:
                    parts.append(_Raw(","))
                parts.append(_Raw(_scalar(k) + ":"))
                parts.append(item[k])
            parts.append(_Raw("}"))
            stack.extend(reversed(parts))
        elif isinstance(item, (list, tuple)):
            parts = [_Raw("[")]
            for i, element in enumerate(item):
                if i:
                    parts.append(_Raw(","))
                parts.append(element)
            parts.append(_Raw("]"))
            stack.extend(reversed(parts))
        else:
            out.append(_scalar(item))
    return "".join(out)


def canonical_equal(a: Any, b: Any) -> bool:
    return canonicalize(a) == canonicalize(b)
