from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

"""PartsSalesLine canonical model.

The triple (branch_code, checkout_no, item_id) is the business key: a later
import of the same triple updates the existing line instead of adding one.
"""

__all__ = [
    "PartsSalesLine",
    "BusinessKey",
]

BusinessKey = tuple[str, str, str]


@dataclass(frozen=True)
class PartsSalesLine:
    batch_id: int  # batch that first created the line
    branch_code: str
    checkout_no: str
    item_id: str
    part_no: str
    work_order_no: str | None = None
    work_order_key: str | None = None  # f"{branch_code}_{work_order_no}"
    part_name: str | None = None
    qty: Decimal | None = None
    sale_amount: Decimal | None = None
    cost_amount: Decimal | None = None
    advisor_name: str | None = None
    sales_name: str | None = None

    @property
    def business_key(self) -> BusinessKey:
        return (self.branch_code, self.checkout_no, self.item_id)
