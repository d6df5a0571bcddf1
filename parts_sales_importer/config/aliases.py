from __future__ import annotations

from collections.abc import Mapping, Sequence

"""Header alias table for the parts sales report.

Canonical field -> vendor header spellings that mean the same column. New
spellings are added here (or under ``header_aliases`` in import.yml), never as
conditionals in the importer.
"""

__all__ = [
    "MAPPING_VERSION",
    "REPORT_TYPE",
    "DEFAULT_HEADER_ALIASES",
    "REQUIRED_FIELDS",
    "merge_aliases",
]

REPORT_TYPE = "parts_sales"
MAPPING_VERSION = "v1"

# 零件銷售報表: 後續新增供應商寫法只需擴充此表
DEFAULT_HEADER_ALIASES: dict[str, list[str]] = {
    "branchCode": ["據點", "廠別", "服務廠"],
    "checkoutNo": ["結帳單號", "結算單號"],
    "itemId": ["項目ID", "項目Id", "項次"],
    "workOrderNo": ["工單號", "工作單號", "工作單號碼"],
    "partNo": ["零件編號", "料號"],
    "partName": ["零件名稱", "品名"],
    "qty": ["銷售數量", "數量", "數量(銷售)"],
    "saleAmount": ["實際售價", "銷售金額", "售價"],
    "costAmount": ["成本總價", "成本金額", "成本"],
    "advisorName": ["接待人員", "服務顧問", "顧問"],
    "salesName": ["銷售人員", "零件銷售", "銷售"],
}

# 缺任一欄就整批不進 canonical (仍會進 staging)
REQUIRED_FIELDS: tuple[str, ...] = ("branchCode", "checkoutNo", "itemId", "partNo")


def merge_aliases(
    base: Mapping[str, Sequence[str]],
    extra: Mapping[str, Sequence[str]] | None,
) -> dict[str, list[str]]:
    """Return ``base`` with the spellings from ``extra`` appended.

    Merging is additive only: existing aliases keep their position (so the
    left-to-right match order of a field never changes) and duplicates are
    dropped. Raises ValueError for a canonical field that ``base`` lacks.
    """
    merged = {name: list(aliases) for name, aliases in base.items()}
    if not extra:
        return merged
    unknown = sorted(set(extra) - set(merged))
    if unknown:
        raise ValueError(f"unknown canonical fields in header_aliases: {unknown}")
    for name, aliases in extra.items():
        current = merged[name]
        for alias in aliases:
            if alias not in current:
                current.append(alias)
    return merged
