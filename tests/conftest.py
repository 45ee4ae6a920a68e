import json
from datetime import datetime, timedelta

import pytest

from app import create_app
from models import db
from storage import MemStorage, SqlStorage


class FakeClock:
    """Advances one minute per call so creation times never tie."""

    def __init__(self, start=datetime(2024, 1, 1, 12, 0)):
        self.now = start

    def __call__(self):
        self.now += timedelta(minutes=1)
        return self.now


def order_data(**overrides):
    """Storage-level (snake_case) order payload."""
    data = {
        "customer_info": "Budi",
        "table_number": "5",
        "items": json.dumps([
            {"menuItemId": 1, "name": "Nasi Gudeg Special", "price": 25000, "quantity": 2},
        ]),
        "total_amount": 50000,
        "payment_method": "cash",
    }
    data.update(overrides)
    return data


def order_body(**overrides):
    """HTTP-level (camelCase) order payload, as the checkout page sends it."""
    body = {
        "customerInfo": "Budi",
        "tableNumber": "5",
        "items": json.dumps([
            {"menuItemId": 1, "name": "Nasi Gudeg Special", "price": 25000, "quantity": 2},
        ]),
        "totalAmount": 50000,
        "paymentMethod": "cash",
        "status": "pending",
    }
    body.update(overrides)
    return body


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage(clock):
    return MemStorage(clock=clock)


@pytest.fixture
def app(storage):
    app = create_app({"STORAGE_BACKEND": "memory", "LOG_LEVEL": "WARNING"}, storage=storage)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sql_app():
    app = create_app({
        "STORAGE_BACKEND": "sql",
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "SEED_MENU": True,
        "LOG_LEVEL": "WARNING",
    })
    app.config["TESTING"] = True
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def sql_storage(sql_app, clock):
    with sql_app.app_context():
        yield SqlStorage(db, clock=clock)
