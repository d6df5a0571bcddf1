from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..config.aliases import REQUIRED_FIELDS
from ..excel.headers import HeaderMap
from ..models.parts_sales_line import PartsSalesLine

"""Validation gate for parts sales rows.

Two tiers, checked in this order:

1. Required columns: once per batch, against the header map. If any required
   field has no column, every row of the batch is an error row.
2. Row schema: each decoded row is parsed into ``PartsSalesLineInput``.
   Required keys must be non-empty; numeric fields, when not blank, must
   parse as finite decimals.
"""

__all__ = [
    "PartsSalesLineInput",
    "RowValidation",
    "missing_required_fields",
    "validate_row",
    "work_order_key",
]


def missing_required_fields(
    header_map: HeaderMap, required: Sequence[str] = REQUIRED_FIELDS
) -> list[str]:
    return [name for name in required if name not in header_map.field_index]


class PartsSalesLineInput(BaseModel):
    """One decoded row, keyed by canonical (camelCase) field names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    branch_code: str = Field(alias="branchCode", min_length=1)
    checkout_no: str = Field(alias="checkoutNo", min_length=1)
    item_id: str = Field(alias="itemId", min_length=1)
    part_no: str = Field(alias="partNo", min_length=1)
    work_order_no: str | None = Field(None, alias="workOrderNo")
    part_name: str | None = Field(None, alias="partName")
    qty: Decimal | None = Field(None, alias="qty", allow_inf_nan=False)
    sale_amount: Decimal | None = Field(None, alias="saleAmount", allow_inf_nan=False)
    cost_amount: Decimal | None = Field(None, alias="costAmount", allow_inf_nan=False)
    advisor_name: str | None = Field(None, alias="advisorName")
    sales_name: str | None = Field(None, alias="salesName")

    @field_validator(
        "work_order_no",
        "part_name",
        "qty",
        "sale_amount",
        "cost_amount",
        "advisor_name",
        "sales_name",
        mode="before",
    )
    @classmethod
    def _blank_as_missing(cls, value: Any) -> Any:
        # 空白儲存格 = 未填
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    def to_line(self, batch_id: int) -> PartsSalesLine:
        return PartsSalesLine(
            batch_id=batch_id,
            branch_code=self.branch_code,
            checkout_no=self.checkout_no,
            item_id=self.item_id,
            part_no=self.part_no,
            work_order_no=self.work_order_no,
            work_order_key=work_order_key(self.branch_code, self.work_order_no),
            part_name=self.part_name,
            qty=self.qty,
            sale_amount=self.sale_amount,
            cost_amount=self.cost_amount,
            advisor_name=self.advisor_name,
            sales_name=self.sales_name,
        )


@dataclass(frozen=True)
class RowValidation:
    line: PartsSalesLineInput | None
    errors: list[dict[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.line is not None


def work_order_key(branch_code: str | None, work_order_no: str | None) -> str | None:
    """``{branch}_{work order}`` when both parts exist, else None."""
    if branch_code and work_order_no:
        return f"{branch_code}_{work_order_no}"
    return None


def validate_row(fields: Mapping[str, str]) -> RowValidation:
    """Validate one decoded row; never raises for bad data."""
    try:
        line = PartsSalesLineInput.model_validate(dict(fields))
    except ValidationError as e:
        errors = [
            {
                "field": ".".join(str(p) for p in err["loc"]),
                "error_code": err["type"],
                "message": err["msg"],
            }
            for err in e.errors()
        ]
        return RowValidation(line=None, errors=errors)
    return RowValidation(line=line)
