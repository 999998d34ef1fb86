from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class CurrentUser(BaseModel):
    uid: str
    email: Optional[str] = None
    name: Optional[str] = None


class PaymentUserData(BaseModel):
    uid: Optional[str] = None
    email: Optional[str] = None


class BankTransferInitiateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_data: Optional[PaymentUserData] = Field(default=None, alias="userData")
    plan_name: str = Field(alias="planName")
    amount: float = Field(ge=0)
    credits: int = Field(ge=0)


class BankTransferVerifyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reference_code: Optional[str] = Field(default=None, alias="referenceCode")
    admin_key: Optional[str] = Field(default=None, alias="adminKey")


class PayPalVerifyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: Optional[str] = Field(default=None, alias="orderID")
    transaction_details: Optional[Dict[str, Any]] = Field(
        default=None, alias="transactionDetails"
    )
    user_data: Optional[PaymentUserData] = Field(default=None, alias="userData")
    plan_name: str = Field(alias="planName")
    amount: float = Field(ge=0)
    credits: int = Field(ge=0)


class TestPaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_data: Optional[PaymentUserData] = Field(default=None, alias="userData")
    plan_name: Optional[str] = Field(default=None, alias="planName")
    amount: Optional[float] = Field(default=None, ge=0)
    credits: Optional[int] = Field(default=None, ge=0)


class PresetRef(BaseModel):
    """Category and key of a preset, carried together wherever an id is built."""

    category: str
    preset_key: str


class DownloadPresetRequest(BaseModel):
    category: str
    preset_key: str
    preset_name: Optional[str] = None
    file_name: Optional[str] = None


class CreateFavoritePreset(BaseModel):
    category: str
    preset_key: str
    preset_name: Optional[str] = None

