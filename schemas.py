"""
Request payload schemas.

Bodies arrive in camelCase; ``model_dump()`` hands the storage layer
snake_case keys with enum members, which the storage unwraps to plain strings.
"""

import json
from datetime import date, datetime, time, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models import Category, PaymentMethod, OrderStatus


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MenuItemCreate(_Payload):
    name: str = Field(..., min_length=1)
    description: str
    price: int = Field(..., ge=0)
    category: Category
    image: Optional[str] = None
    available: bool = True


class MenuItemUpdate(_Payload):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    category: Optional[Category] = None
    image: Optional[str] = None
    available: Optional[bool] = None

    def changes(self):
        """Only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


class OrderCreate(_Payload):
    customer_info: str = Field(..., alias="customerInfo")
    table_number: Optional[str] = Field(None, alias="tableNumber")
    items: str
    total_amount: int = Field(..., alias="totalAmount", ge=0)
    payment_method: PaymentMethod = Field(..., alias="paymentMethod")
    status: OrderStatus = OrderStatus.PENDING

    @field_validator("items", mode="before")
    @classmethod
    def encode_items(cls, value):
        if isinstance(value, list):
            return json.dumps(value)
        return value

    @field_validator("table_number", mode="before")
    @classmethod
    def coerce_table_number(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("status")
    @classmethod
    def must_start_pending(cls, value):
        if value is not OrderStatus.PENDING:
            raise ValueError("new orders always start as pending")
        return value


class StatusUpdate(_Payload):
    status: OrderStatus
    confirmed_at: Optional[datetime] = Field(None, alias="confirmedAt")

    @field_validator("confirmed_at")
    @classmethod
    def to_naive_utc(cls, value):
        return _naive_utc(value) if value is not None else None


def validation_details(exc):
    return exc.errors(include_url=False, include_context=False)


def _naive_utc(value):
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_date_bound(raw, end=False):
    """
    Parse a ``startDate``/``endDate`` query value.

    Accepts ISO dates or datetimes. A bare date as an end bound covers the
    whole day. Raises ValueError on anything else.
    """
    raw = raw.strip()
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
    if parsed is not None and ("T" in raw or " " in raw):
        return _naive_utc(parsed)

    day = date.fromisoformat(raw)
    return datetime.combine(day, time.max if end else time.min)


def parse_date_range(args):
    """Return (start, end) when both bounds are present, else (None, None)."""
    start_raw = args.get("startDate")
    end_raw = args.get("endDate")
    if not start_raw or not end_raw:
        return None, None
    return parse_date_bound(start_raw), parse_date_bound(end_raw, end=True)


def parse_enum(enum_cls, raw):
    """Return the member for ``raw``, None if absent; ValueError if unknown."""
    if raw is None or raw == "":
        return None
    return enum_cls(raw)
