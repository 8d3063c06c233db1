"""
Read models for records coming back from the record store.

Backends disagree on types: a spreadsheet hands back every cell as text,
Supabase returns numbers as numbers, SQL returns floats and datetimes. These
models give handlers one shape to work with. They are lenient on purpose:
numeric ids become strings, numeric strings become numbers and any extra
column is kept.
"""

import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StoreRecord(BaseModel):
    id: str

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True, from_attributes=True)


class CustomerRecord(StoreRecord):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    created_at: Optional[datetime | str] = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @property
    def shipping_address(self) -> dict[str, Optional[str]]:
        return {
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
        }


class ProductRecord(StoreRecord):
    name: Optional[str] = None
    price: Optional[float] = None
    size: Optional[str] = None
    color: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    image_url: Optional[str] = None
    current_discount: Any = None


class OrderRecord(StoreRecord):
    customer_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    items: list[dict[str, Any]] = Field(default_factory=list)
    total_amount: Optional[float] = None
    shipping_status: Optional[str] = None
    return_id: Optional[str] = None
    created_at: Optional[datetime | str] = None

    @field_validator("items", mode="before")
    @classmethod
    def parse_items(cls, value: Any) -> Any:
        """Orders store their line items as a JSON string."""
        if value in (None, ""):
            return []
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError("items is not valid JSON") from exc
        return value


class ReturnRecord(StoreRecord):
    order_id: Optional[str] = None
    customer_id: Optional[str] = None
    reason: Optional[str] = None
    status: Optional[str] = None
    refund_amount: Optional[float] = None
    created_at: Optional[datetime | str] = None
    updated_at: Optional[datetime | str] = None


class SurveyRecord(StoreRecord):
    customer_id: Optional[str] = None
    rating: Optional[int] = None
    feedback: Optional[str] = None
    created_at: Optional[datetime | str] = None
