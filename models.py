import enum
import json
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import List, Optional

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def now_utc():
    """Naive UTC timestamp; every stored datetime uses this convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


# ---------------------------
# Closed tag sets
# ---------------------------

class Category(str, enum.Enum):
    MAKANAN_UTAMA = "makanan-utama"
    MINUMAN = "minuman"
    SNACK = "snack"
    DESSERT = "dessert"

    @property
    def label(self):
        return self.value.replace("-", " ").title()


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    QRIS = "qris"
    DANA = "dana"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    REJECTED = "rejected"


class TransactionStatus(str, enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.REJECTED},
    OrderStatus.CONFIRMED: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.REJECTED: set(),
}


def can_transition(current, target) -> bool:
    return OrderStatus(target) in ALLOWED_TRANSITIONS[OrderStatus(current)]


# ---------------------------
# Entities returned by every storage backend
# ---------------------------

@dataclass
class User:
    id: int
    username: str
    password: str

    def to_dict(self):
        # password is never exposed
        return {"id": self.id, "username": self.username}


@dataclass
class MenuItem:
    id: int
    name: str
    description: str
    price: int
    category: str
    image: Optional[str] = None
    available: bool = True

    def to_dict(self):
        return asdict(self)


@dataclass
class LineItem:
    menu_item_id: Optional[int]
    name: Optional[str]
    price: Optional[int]
    quantity: int

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError("line item must be an object")
        name = data.get("name")
        if name is not None and not (isinstance(name, str) and name):
            raise ValueError("line item name must be a non-empty string")
        quantity = data.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValueError("line item quantity must be a positive integer")
        return cls(
            menu_item_id=data.get("menuItemId"),
            name=name,
            price=data.get("price"),
            quantity=quantity,
        )


@dataclass
class Order:
    id: int
    customer_info: str
    items: str
    total_amount: int
    payment_method: str
    status: str = OrderStatus.PENDING.value
    table_number: Optional[str] = None
    created_at: datetime = field(default_factory=now_utc)
    confirmed_at: Optional[datetime] = None

    def item_entries(self) -> List[dict]:
        """Decode the stored items blob into raw entries. Raises ValueError when the blob is malformed."""
        decoded = json.loads(self.items)
        if not isinstance(decoded, list):
            raise ValueError("items must encode a list")
        return decoded

    def to_dict(self):
        return {
            "id": self.id,
            "customerInfo": self.customer_info,
            "tableNumber": self.table_number,
            "items": self.items,
            "totalAmount": self.total_amount,
            "paymentMethod": self.payment_method,
            "status": self.status,
            "createdAt": _iso(self.created_at),
            "confirmedAt": _iso(self.confirmed_at),
        }


@dataclass
class Transaction:
    id: int
    order_id: int
    amount: int
    payment_method: str
    status: str
    created_at: datetime = field(default_factory=now_utc)

    def to_dict(self):
        return {
            "id": self.id,
            "orderId": self.order_id,
            "amount": self.amount,
            "paymentMethod": self.payment_method,
            "status": self.status,
            "createdAt": _iso(self.created_at),
        }


# ---------------------------
# SQL rows (SqlStorage backend)
# ---------------------------

class UserRecord(db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)

    def to_entity(self):
        return User(id=self.id, username=self.username, password=self.password)


class MenuItemRecord(db.Model):
    __tablename__ = "menu_items"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    price = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(40), nullable=False)
    image = db.Column(db.String(255))
    available = db.Column(db.Boolean, default=True)

    def to_entity(self):
        return MenuItem(
            id=self.id,
            name=self.name,
            description=self.description,
            price=self.price,
            category=self.category,
            image=self.image,
            available=bool(self.available),
        )


class OrderRecord(db.Model):
    __tablename__ = "orders"
    id = db.Column(db.Integer, primary_key=True)
    customer_info = db.Column(db.Text, nullable=False)
    table_number = db.Column(db.String(20))
    items = db.Column(db.Text, nullable=False)
    total_amount = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=OrderStatus.PENDING.value)
    created_at = db.Column(db.DateTime, default=now_utc)
    confirmed_at = db.Column(db.DateTime)

    def to_entity(self):
        return Order(
            id=self.id,
            customer_info=self.customer_info,
            table_number=self.table_number,
            items=self.items,
            total_amount=self.total_amount,
            payment_method=self.payment_method,
            status=self.status,
            created_at=self.created_at,
            confirmed_at=self.confirmed_at,
        )


class TransactionRecord(db.Model):
    __tablename__ = "transactions"
    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"))
    amount = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, default=now_utc)

    def to_entity(self):
        return Transaction(
            id=self.id,
            order_id=self.order_id,
            amount=self.amount,
            payment_method=self.payment_method,
            status=self.status,
            created_at=self.created_at,
        )
