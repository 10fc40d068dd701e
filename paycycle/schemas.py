"""Pydantic schemas validating raw records handed over by the persistence layer"""

import datetime as dt
from datetime import date
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from paycycle.config import settings
from paycycle.domain.models import (
    Account,
    Card,
    DirectDebit,
    LedgerEntry,
    RecurringProjection,
)
from paycycle.domain.payment_cycle import make_billing_config

PaymentType = Literal["card", "bank"]


class AccountRecord(BaseModel):
    """Stored bank account"""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=50)

    def to_domain(self) -> Account:
        return Account(id=self.id, name=self.name)


class CardRecord(BaseModel):
    """Stored card with raw closing/payment tokens ("15" or "月末")"""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=50)
    account_id: str = Field(..., min_length=1, description="Account the card is settled from")
    closing_day: str
    payment_day: str
    payment_month_shift: int = Field(1, ge=0, le=2)
    adjust_weekend: bool = False
    created_at: int = 0

    def to_domain(self) -> Card:
        """Raises InvalidDayToken when a stored token does not parse"""
        return Card(
            id=self.id,
            name=self.name,
            account_id=self.account_id,
            billing=make_billing_config(
                self.closing_day,
                self.payment_day,
                self.payment_month_shift,
                self.adjust_weekend,
            ),
            created_at=self.created_at,
        )


class DirectDebitRecord(BaseModel):
    """Stored direct-debit profile"""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=50)
    account_id: str = Field(..., min_length=1)
    adjust_weekend: bool = Field(default_factory=lambda: settings.bank_adjust_weekend)
    created_at: int = 0

    def to_domain(self) -> DirectDebit:
        return DirectDebit(
            id=self.id,
            name=self.name,
            account_id=self.account_id,
            adjust_weekend=self.adjust_weekend,
            created_at=self.created_at,
        )


class LedgerEntryRecord(BaseModel):
    """Stored transaction"""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    occurred_on: date
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    instrument_id: str = Field(..., min_length=1)
    scheduled_pay_date: Optional[date] = None
    payment_type: Optional[PaymentType] = None
    store_name: Optional[str] = Field(None, max_length=100)
    usage: Optional[str] = Field(None, max_length=100)
    memo: Optional[str] = Field(None, max_length=200)

    def to_domain(self) -> LedgerEntry:
        return LedgerEntry(**self.model_dump())


class ProjectionRecord(BaseModel):
    """Stored recurring obligation"""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    due_on: date
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    instrument_id: str = Field(..., min_length=1)
    payment_type: Optional[PaymentType] = None
    store_name: Optional[str] = Field(None, max_length=100)
    usage: Optional[str] = Field(None, max_length=100)

    def to_domain(self) -> RecurringProjection:
        return RecurringProjection(**self.model_dump())


class DayItem(BaseModel):
    """
    Lenient view of one item for day-total aggregation.

    Only the fields the calendar needs are checked: a real date and a finite,
    non-negative amount. Labels that do not name a known payment type become
    None, so the item still counts towards the totals without a card/bank split.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    date: dt.date
    amount: float = Field(..., ge=0, allow_inf_nan=False, strict=True)
    payment_type: Optional[PaymentType] = None
    instrument_id: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("instrument_id", mode="before")
    @classmethod
    def _instrument_id_as_text(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @field_validator("payment_type", mode="before")
    @classmethod
    def _known_payment_type(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        return normalized if normalized in ("card", "bank") else None
