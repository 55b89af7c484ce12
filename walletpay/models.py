"""Wire shapes returned by the backend, and the in-memory session projection."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class _Wire(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class TokenResponse(_Wire):
    access: str = Field(min_length=1)
    refresh: str = Field(min_length=1)


class RefreshResponse(_Wire):
    access: str = Field(min_length=1)
    refresh: Optional[str] = None


class UserProfile(_Wire):
    username: str = Field(min_length=1)
    email: str
    first_name: str = ""
    last_name: str = ""
    phone_number: str = ""
    date_of_birth: Optional[str] = None
    id_number_type: Optional[str] = None
    id_number: Optional[str] = None
    wallet_id: Optional[str] = None


class BalanceResponse(_Wire):
    wallet_balance: Decimal = Field(alias="wallet balance")

    @field_validator("wallet_balance")
    @classmethod
    def finite(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("balance must be finite")
        return v


class EntryType(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class LedgerEntry(_Wire):
    transaction_id: str
    wallet: Union[int, str]
    amount: Decimal
    entry_type: EntryType
    created_at: datetime

    @property
    def signed_amount(self) -> Decimal:
        return -abs(self.amount) if self.entry_type is EntryType.DEBIT else abs(self.amount)


LedgerList = TypeAdapter(list[LedgerEntry])


class TransferOutcome(_Wire):
    transaction_id: str
    status: str


class Session(BaseModel):
    """Authenticated identity, derived from a profile fetch and never persisted."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    phone_number: str = ""
    date_of_birth: Optional[str] = None
    id_number_type: Optional[str] = None
    id_number: Optional[str] = None
    wallet_id: Optional[str] = None

    @classmethod
    def from_profile(cls, p: UserProfile) -> "Session":
        return cls(id=p.username, **p.model_dump(exclude={"username"}))

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.id
