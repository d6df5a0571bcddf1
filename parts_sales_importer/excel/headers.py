from __future__ import annotations

import hashlib
import json
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

"""Header normalization and canonical field mapping.

Vendor reports label the same column in several ways (``據點`` / ``廠別`` /
``服務廠``), with stray spaces and full-width punctuation. Headers are
normalized, then matched against the alias table field by field.

Match rule: for each canonical field the left-most column whose normalized
text equals one of the field's normalized aliases wins. Later columns that
match the same field are ignored (logged as shadowed).
"""

__all__ = [
    "HeaderMap",
    "normalize_header",
    "build_header_map",
    "header_signature",
]

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_header(value: Any) -> str:
    """Trim, drop whitespace runs and unify the full-width colon.

    ``None`` becomes ``""``. Applying it twice gives the same result.
    """
    text = "" if value is None else str(value)
    return _WHITESPACE.sub("", text.strip()).replace("：", ":")


@dataclass(frozen=True)
class HeaderMap:
    field_index: dict[str, int]  # canonical field -> column index
    unknown_columns: list[str]  # raw header text, left to right
    normalized_headers: list[str]
    shadowed: dict[str, list[int]] = field(default_factory=dict)  # field -> ignored later columns

    @property
    def unknown_set(self) -> set[str]:
        return set(self.unknown_columns)


def build_header_map(headers: Sequence[Any], aliases: Mapping[str, Sequence[str]]) -> HeaderMap:
    normalized = [normalize_header(h) for h in headers]
    normalized_aliases = {
        name: {normalize_header(a) for a in names} for name, names in aliases.items()
    }
    known: set[str] = set().union(*normalized_aliases.values())

    field_index: dict[str, int] = {}
    shadowed: dict[str, list[int]] = {}
    for name, accepted in normalized_aliases.items():
        matches = [idx for idx, h in enumerate(normalized) if h in accepted]
        if not matches:
            continue
        field_index[name] = matches[0]
        if len(matches) > 1:
            shadowed[name] = matches[1:]
            logger.warning(
                "header field=%s matched columns=%s; using first (%r)",
                name,
                matches,
                str(headers[matches[0]]),
            )

    unknown = [
        "" if h is None else str(h)
        for h, nh in zip(headers, normalized, strict=True)
        if nh not in known
    ]
    # 同名未知欄: staging 的 unknown 以最右欄的值為準
    duplicated = sorted({h for h in unknown if unknown.count(h) > 1})
    if duplicated:
        logger.warning(
            "duplicate unknown headers %s; only the rightmost non-blank cell is kept", duplicated
        )
    return HeaderMap(
        field_index=field_index,
        unknown_columns=unknown,
        normalized_headers=normalized,
        shadowed=shadowed,
    )


def header_signature(normalized_headers: Sequence[str]) -> str:
    """sha256 hex over the sorted header set; column order does not matter."""
    payload = json.dumps(sorted(normalized_headers), ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
