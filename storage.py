"""
Repository layer.

``Storage`` is the contract the routes depend on. ``MemStorage`` keeps every
entity in id-keyed dicts for the lifetime of the process; ``SqlStorage`` runs
the same contract through Flask-SQLAlchemy. Lookups of a missing id return
``None`` (or ``False`` for deletes) rather than raising.
"""

import abc
import logging
from dataclasses import replace

from models import (
    db as default_db,
    now_utc,
    OrderStatus, TransactionStatus, can_transition,
    User, MenuItem, Order, Transaction,
    UserRecord, MenuItemRecord, OrderRecord, TransactionRecord,
)

logger = logging.getLogger(__name__)

MENU_FIELDS = ("name", "description", "price", "category", "image", "available")

SAMPLE_MENU = [
    {
        "name": "Nasi Gudeg Special",
        "description": "Gudeg ayam dengan nasi, sambal, dan kerupuk",
        "price": 25000,
        "category": "makanan-utama",
        "image": "gudeg.jpg",
        "available": True,
    },
    {
        "name": "Nasi Goreng Kampung",
        "description": "Nasi goreng dengan telur, sayuran, dan kerupuk",
        "price": 22000,
        "category": "makanan-utama",
        "image": "nasgor.jpg",
        "available": True,
    },
    {
        "name": "Ayam Bakar Bumbu Rujak",
        "description": "Ayam bakar dengan bumbu rujak, nasi, dan lalapan",
        "price": 28000,
        "category": "makanan-utama",
        "image": "ayam-bakar.jpg",
        "available": True,
    },
    {
        "name": "Es Jeruk Peras",
        "description": "Jeruk peras segar dengan es batu",
        "price": 8000,
        "category": "minuman",
        "image": "es-jeruk.jpg",
        "available": True,
    },
    {
        "name": "Es Teh Manis",
        "description": "Teh manis dingin yang menyegarkan",
        "price": 5000,
        "category": "minuman",
        "image": "es-teh.jpg",
        "available": True,
    },
    {
        "name": "Keripik Singkong",
        "description": "Keripik singkong renyah dengan bumbu pedas",
        "price": 12000,
        "category": "snack",
        "image": "keripik.jpg",
        "available": True,
    },
    {
        "name": "Es Krim Kelapa",
        "description": "Es krim rasa kelapa dengan topping kelapa parut",
        "price": 15000,
        "category": "dessert",
        "image": "es-krim.jpg",
        "available": True,
    },
]


class StorageError(Exception):
    pass


class InvalidStatusTransition(StorageError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move order from {current} to {target}")


class DuplicateUsername(StorageError):
    pass


def _value(tag):
    return getattr(tag, "value", tag)


def _newest_first(entities):
    return sorted(entities, key=lambda e: (e.created_at, e.id), reverse=True)


def seed_menu(storage):
    """Insert the fixed sample menu. Returns the created items."""
    items = [storage.create_menu_item(dict(entry)) for entry in SAMPLE_MENU]
    logger.info("Seeded %d sample menu items", len(items))
    return items


class Storage(abc.ABC):
    """Capability contract consumed by the route layer."""

    backend = None

    # Users
    @abc.abstractmethod
    def get_user(self, user_id): ...

    @abc.abstractmethod
    def get_user_by_username(self, username): ...

    @abc.abstractmethod
    def create_user(self, data): ...

    # Menu
    @abc.abstractmethod
    def get_all_menu_items(self): ...

    @abc.abstractmethod
    def get_menu_items_by_category(self, category): ...

    @abc.abstractmethod
    def get_menu_item(self, item_id): ...

    @abc.abstractmethod
    def create_menu_item(self, data): ...

    @abc.abstractmethod
    def update_menu_item(self, item_id, updates): ...

    @abc.abstractmethod
    def delete_menu_item(self, item_id): ...

    @abc.abstractmethod
    def count_menu_items(self): ...

    # Orders
    @abc.abstractmethod
    def get_all_orders(self): ...

    @abc.abstractmethod
    def get_orders_by_status(self, status): ...

    @abc.abstractmethod
    def get_order(self, order_id): ...

    @abc.abstractmethod
    def create_order(self, data): ...

    @abc.abstractmethod
    def update_order_status(self, order_id, status, confirmed_at=None): ...

    @abc.abstractmethod
    def place_order(self, data):
        """Create an order and its completed transaction as one unit."""

    # Transactions
    @abc.abstractmethod
    def get_all_transactions(self): ...

    @abc.abstractmethod
    def get_transactions_by_date_range(self, start, end): ...

    @abc.abstractmethod
    def create_transaction(self, data): ...

    def _next_status(self, order, status, confirmed_at):
        """Validate a transition and work out the resulting confirmed_at."""
        status = OrderStatus(_value(status))
        if not can_transition(order.status, status):
            raise InvalidStatusTransition(order.status, status.value)
        if confirmed_at is None and status is OrderStatus.CONFIRMED:
            confirmed_at = self._clock()
        return status.value, confirmed_at or order.confirmed_at

    @staticmethod
    def _transaction_for(order):
        return {
            "order_id": order.id,
            "amount": order.total_amount,
            "payment_method": order.payment_method,
            "status": TransactionStatus.COMPLETED.value,
        }


class MemStorage(Storage):
    backend = "memory"

    def __init__(self, seed=True, clock=None):
        self._clock = clock or now_utc
        self._users = {}
        self._menu_items = {}
        self._orders = {}
        self._transactions = {}
        self._next_ids = {"user": 1, "menu_item": 1, "order": 1, "transaction": 1}
        if seed:
            seed_menu(self)

    def _allocate(self, kind):
        new_id = self._next_ids[kind]
        self._next_ids[kind] += 1
        return new_id

    # Users
    def get_user(self, user_id):
        return self._users.get(user_id)

    def get_user_by_username(self, username):
        return next((u for u in self._users.values() if u.username == username), None)

    def create_user(self, data):
        if self.get_user_by_username(data["username"]) is not None:
            raise DuplicateUsername(data["username"])
        user = User(id=self._allocate("user"), username=data["username"], password=data["password"])
        self._users[user.id] = user
        return user

    # Menu
    def get_all_menu_items(self):
        return list(self._menu_items.values())

    def get_menu_items_by_category(self, category):
        category = _value(category)
        return [item for item in self._menu_items.values() if item.category == category]

    def get_menu_item(self, item_id):
        return self._menu_items.get(item_id)

    def create_menu_item(self, data):
        fields = {key: _value(data[key]) for key in MENU_FIELDS if key in data}
        item = MenuItem(id=self._allocate("menu_item"), **fields)
        self._menu_items[item.id] = item
        logger.debug("Created menu item %s", item.id)
        return item

    def update_menu_item(self, item_id, updates):
        item = self._menu_items.get(item_id)
        if item is None:
            return None
        changes = {key: _value(value) for key, value in updates.items() if key in MENU_FIELDS}
        updated = replace(item, **changes)
        self._menu_items[item_id] = updated
        return updated

    def delete_menu_item(self, item_id):
        return self._menu_items.pop(item_id, None) is not None

    def count_menu_items(self):
        return len(self._menu_items)

    # Orders
    def get_all_orders(self):
        return _newest_first(self._orders.values())

    def get_orders_by_status(self, status):
        status = _value(status)
        return _newest_first(o for o in self._orders.values() if o.status == status)

    def get_order(self, order_id):
        return self._orders.get(order_id)

    def create_order(self, data):
        order = Order(
            id=self._allocate("order"),
            customer_info=data["customer_info"],
            table_number=data.get("table_number") or None,
            items=data["items"],
            total_amount=data["total_amount"],
            payment_method=_value(data["payment_method"]),
            status=OrderStatus.PENDING.value,
            created_at=self._clock(),
            confirmed_at=None,
        )
        self._orders[order.id] = order
        logger.debug("Created order %s", order.id)
        return order

    def update_order_status(self, order_id, status, confirmed_at=None):
        order = self._orders.get(order_id)
        if order is None:
            return None
        status, confirmed_at = self._next_status(order, status, confirmed_at)
        updated = replace(order, status=status, confirmed_at=confirmed_at)
        self._orders[order_id] = updated
        return updated

    def place_order(self, data):
        order = self.create_order(data)
        try:
            transaction = self.create_transaction(self._transaction_for(order))
        except Exception:
            # compensate so no order is left without its transaction
            logger.error("Transaction for order %s failed, removing the order", order.id)
            self._orders.pop(order.id, None)
            raise
        return order, transaction

    # Transactions
    def get_all_transactions(self):
        return _newest_first(self._transactions.values())

    def get_transactions_by_date_range(self, start, end):
        return _newest_first(
            t for t in self._transactions.values() if start <= t.created_at <= end
        )

    def create_transaction(self, data):
        transaction = Transaction(
            id=self._allocate("transaction"),
            order_id=data["order_id"],
            amount=data["amount"],
            payment_method=_value(data["payment_method"]),
            status=_value(data["status"]),
            created_at=self._clock(),
        )
        self._transactions[transaction.id] = transaction
        return transaction


class SqlStorage(Storage):
    """Same contract over Flask-SQLAlchemy. Must be used inside an app context."""

    backend = "sql"

    def __init__(self, db=None, clock=None):
        self.db = db or default_db
        self._clock = clock or now_utc

    @property
    def session(self):
        return self.db.session

    def _commit(self):
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    # Users
    def get_user(self, user_id):
        row = self.session.get(UserRecord, user_id)
        return row.to_entity() if row else None

    def get_user_by_username(self, username):
        row = UserRecord.query.filter_by(username=username).first()
        return row.to_entity() if row else None

    def create_user(self, data):
        if self.get_user_by_username(data["username"]) is not None:
            raise DuplicateUsername(data["username"])
        row = UserRecord(username=data["username"], password=data["password"])
        self.session.add(row)
        self._commit()
        return row.to_entity()

    # Menu
    def get_all_menu_items(self):
        return [row.to_entity() for row in MenuItemRecord.query.order_by(MenuItemRecord.id)]

    def get_menu_items_by_category(self, category):
        rows = MenuItemRecord.query.filter_by(category=_value(category)).order_by(MenuItemRecord.id)
        return [row.to_entity() for row in rows]

    def get_menu_item(self, item_id):
        row = self.session.get(MenuItemRecord, item_id)
        return row.to_entity() if row else None

    def create_menu_item(self, data):
        row = MenuItemRecord(**{key: _value(data[key]) for key in MENU_FIELDS if key in data})
        self.session.add(row)
        self._commit()
        logger.debug("Created menu item %s", row.id)
        return row.to_entity()

    def update_menu_item(self, item_id, updates):
        row = self.session.get(MenuItemRecord, item_id)
        if row is None:
            return None
        for key, value in updates.items():
            if key in MENU_FIELDS:
                setattr(row, key, _value(value))
        self._commit()
        return row.to_entity()

    def delete_menu_item(self, item_id):
        row = self.session.get(MenuItemRecord, item_id)
        if row is None:
            return False
        self.session.delete(row)
        self._commit()
        return True

    def count_menu_items(self):
        return MenuItemRecord.query.count()

    # Orders
    def _orders_query(self):
        return OrderRecord.query.order_by(OrderRecord.created_at.desc(), OrderRecord.id.desc())

    def get_all_orders(self):
        return [row.to_entity() for row in self._orders_query()]

    def get_orders_by_status(self, status):
        return [row.to_entity() for row in self._orders_query().filter_by(status=_value(status))]

    def get_order(self, order_id):
        row = self.session.get(OrderRecord, order_id)
        return row.to_entity() if row else None

    def _order_row(self, data):
        return OrderRecord(
            customer_info=data["customer_info"],
            table_number=data.get("table_number") or None,
            items=data["items"],
            total_amount=data["total_amount"],
            payment_method=_value(data["payment_method"]),
            status=OrderStatus.PENDING.value,
            created_at=self._clock(),
        )

    def create_order(self, data):
        row = self._order_row(data)
        self.session.add(row)
        self._commit()
        logger.debug("Created order %s", row.id)
        return row.to_entity()

    def update_order_status(self, order_id, status, confirmed_at=None):
        row = self.session.get(OrderRecord, order_id)
        if row is None:
            return None
        row.status, row.confirmed_at = self._next_status(row, status, confirmed_at)
        self._commit()
        return row.to_entity()

    def place_order(self, data):
        try:
            order_row = self._order_row(data)
            self.session.add(order_row)
            self.session.flush()
            txn_row = TransactionRecord(
                created_at=self._clock(), **self._transaction_for(order_row)
            )
            self.session.add(txn_row)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.debug("Placed order %s with transaction %s", order_row.id, txn_row.id)
        return order_row.to_entity(), txn_row.to_entity()

    # Transactions
    def _transactions_query(self):
        return TransactionRecord.query.order_by(
            TransactionRecord.created_at.desc(), TransactionRecord.id.desc()
        )

    def get_all_transactions(self):
        return [row.to_entity() for row in self._transactions_query()]

    def get_transactions_by_date_range(self, start, end):
        rows = self._transactions_query().filter(
            TransactionRecord.created_at >= start,
            TransactionRecord.created_at <= end,
        )
        return [row.to_entity() for row in rows]

    def create_transaction(self, data):
        row = TransactionRecord(
            order_id=data["order_id"],
            amount=data["amount"],
            payment_method=_value(data["payment_method"]),
            status=_value(data["status"]),
            created_at=self._clock(),
        )
        self.session.add(row)
        self._commit()
        return row.to_entity()
