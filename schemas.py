import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from periods import PeriodMode


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field("#6b7280", pattern=r"^#[0-9a-fA-F]{6}$")
    order: int = 0


class ExpenseTypeIn(BaseModel):
    category_id: int
    name: str = Field(..., min_length=1, max_length=100)


class ExpenseIn(BaseModel):
    expense_type_id: int
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    date: dt.date
    description: Optional[str] = Field(default=None, max_length=200)


class IncomeIn(BaseModel):
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    date: dt.date
    source: Optional[str] = Field(default=None, max_length=100)


class AnalyticsQuery(BaseModel):
    """Period parameters accepted by the analytics endpoints.

    ``year``/``month`` left empty fall back to the default period; ``month`` is
    zero-based like the rest of the period code.
    """

    model_config = ConfigDict(extra="ignore")

    mode: PeriodMode = PeriodMode.monthly
    year: Optional[int] = Field(default=None, ge=1970, le=3000)
    month: Optional[int] = Field(default=None, ge=0, le=11)
