from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from sqlalchemy import BigInteger, Column, text
from sqlalchemy.types import JSON
from sqlmodel import Field, SQLModel


class TimestampModel(SQLModel):
    created_at: datetime = Field(
        default_factory=datetime.now,
        nullable=False,
        sa_column_kwargs={"server_default": text("current_timestamp(0)")},
    )

    updated_at: datetime = Field(
        default_factory=datetime.now,
        nullable=False,
        sa_column_kwargs={
            "server_default": text("current_timestamp(0)"),
            "onupdate": text("current_timestamp(0)"),
        },
    )


class PriceType(str, Enum):
    ONE_TIME = "one-time"
    RECURRING = "recurring"


class PaymentMethod(str, Enum):
    POLAR = "Polar.sh"
    PAYPAL = "PayPal"
    BANK_TRANSFER = "Bank Transfer"
    TEST = "Test Payment"


class PresetCategory(str, Enum):
    PREMIUM = "premium"
    VOCAL_CHAIN = "vocal_chain"
    INSTRUMENT = "instrument"


class BankTransferStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"


class PaymentRecord(SQLModel, table=True):
    """Append-only purchase ledger; every row is a confirmed purchase."""

    __tablename__ = "payment_records"

    id: str = Field(primary_key=True, nullable=False)
    user_id: str = Field(nullable=False, index=True)
    user_email: str = Field(nullable=False)
    plan_name: str = Field(nullable=False)
    price_type: PriceType = Field(default=PriceType.ONE_TIME, nullable=False)
    price_amount: float = Field(default=0.0, nullable=False)
    credits: int = Field(default=0, nullable=False, ge=0)
    purchase_time: int = Field(
        sa_column=Column(BigInteger, nullable=False, index=True)
    )
    confirmed: bool = Field(default=True, nullable=False)
    payment_method: Optional[str] = Field(default=None, nullable=True)
    transaction_id: Optional[str] = Field(default=None, nullable=True, index=True)
    payment_details: Optional[Dict] = Field(
        default=None, sa_column=Column(JSON, nullable=True)
    )


class UserDownload(SQLModel, table=True):
    """Download ledger; rows expire with their free redownload window."""

    __tablename__ = "user_downloads"

    id: str = Field(primary_key=True, nullable=False)
    user_id: str = Field(nullable=False, index=True)
    user_email: str = Field(nullable=False)
    preset_id: str = Field(nullable=False, index=True)
    preset_category: str = Field(nullable=False, index=True)
    preset_key: str = Field(nullable=False)
    preset_name: str = Field(nullable=False)
    file_name: str = Field(nullable=False)
    credits: Optional[int] = Field(default=0, nullable=True, ge=0)
    download_time: int = Field(
        sa_column=Column(BigInteger, nullable=False, index=True)
    )
    # download_time of the paid download whose window covers this row
    window_started_at: int = Field(sa_column=Column(BigInteger, nullable=False))
    download_url: Optional[str] = Field(default=None, nullable=True)


class UserFavorite(SQLModel, table=True):
    __tablename__ = "user_favorites"

    id: str = Field(primary_key=True, nullable=False)
    user_id: str = Field(nullable=False, index=True)
    user_email: str = Field(nullable=False)
    preset_id: str = Field(nullable=False)
    preset_name: str = Field(nullable=False)
    category: str = Field(nullable=False)
    favorite_time: int = Field(sa_column=Column(BigInteger, nullable=False))


class BankTransfer(TimestampModel, table=True):
    __tablename__ = "bank_transfers"

    reference_code: str = Field(primary_key=True, nullable=False)
    user_id: str = Field(nullable=False, index=True)
    user_email: str = Field(nullable=False)
    plan_name: str = Field(nullable=False)
    amount: float = Field(default=0.0, nullable=False)
    credits: int = Field(default=0, nullable=False, ge=0)
    status: BankTransferStatus = Field(
        default=BankTransferStatus.PENDING, nullable=False, index=True
    )
    payment_record_id: Optional[str] = Field(default=None, nullable=True)

