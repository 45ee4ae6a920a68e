from datetime import datetime

import pytest

from models import Category, OrderStatus
from storage import MemStorage, InvalidStatusTransition, DuplicateUsername, SAMPLE_MENU
from tests.conftest import order_data


def test_sample_menu_is_seeded_from_id_one(storage):
    items = storage.get_all_menu_items()
    assert [item.id for item in items] == list(range(1, len(SAMPLE_MENU) + 1))
    assert items[0].name == "Nasi Gudeg Special"
    assert items[0].price == 25000
    assert items[1].price == 22000


def test_unseeded_storage_is_empty():
    assert MemStorage(seed=False).get_all_menu_items() == []


def test_create_then_get_menu_item_returns_input_plus_id(storage):
    data = {
        "name": "Sate Ayam",
        "description": "Sate ayam dengan bumbu kacang",
        "price": 20000,
        "category": "makanan-utama",
        "image": "sate.jpg",
        "available": True,
    }
    created = storage.create_menu_item(data)
    fetched = storage.get_menu_item(created.id)
    assert fetched.to_dict() == {**data, "id": created.id}


def test_create_menu_item_accepts_enum_category(storage):
    item = storage.create_menu_item({
        "name": "Pisang Goreng", "description": "", "price": 7000, "category": Category.SNACK,
    })
    assert item.category == "snack"
    assert item.available is True
    assert item.image is None


def test_menu_items_by_category(storage):
    drinks = storage.get_menu_items_by_category("minuman")
    assert {item.name for item in drinks} == {"Es Jeruk Peras", "Es Teh Manis"}
    assert storage.get_menu_items_by_category(Category.DESSERT)[0].name == "Es Krim Kelapa"


def test_update_menu_item_merges_partial_changes(storage):
    updated = storage.update_menu_item(1, {"price": 26000, "available": False, "id": 99})
    assert updated.id == 1
    assert updated.price == 26000
    assert updated.available is False
    assert updated.name == "Nasi Gudeg Special"
    assert storage.get_menu_item(1).price == 26000


def test_update_missing_menu_item_returns_none(storage):
    assert storage.update_menu_item(404, {"price": 1}) is None


def test_delete_menu_item(storage):
    assert storage.delete_menu_item(1) is True
    assert storage.get_menu_item(1) is None
    assert storage.delete_menu_item(1) is False


def test_delete_missing_menu_item_is_not_found(storage):
    assert storage.delete_menu_item(12345) is False


def test_ids_are_not_reused_after_delete(storage):
    last = storage.get_all_menu_items()[-1]
    storage.delete_menu_item(last.id)
    created = storage.create_menu_item({
        "name": "Teh Tarik", "description": "", "price": 9000, "category": "minuman",
    })
    assert created.id == last.id + 1


def test_new_order_starts_pending_without_confirmation(storage):
    order = storage.create_order(order_data(status="confirmed"))
    assert order.status == "pending"
    assert order.confirmed_at is None
    assert order.created_at is not None


def test_blank_table_number_is_stored_as_none(storage):
    assert storage.create_order(order_data(table_number="")).table_number is None


def test_confirm_stamps_transition_time(storage, clock):
    order = storage.create_order(order_data())
    confirmed = storage.update_order_status(order.id, "confirmed")
    assert confirmed.status == "confirmed"
    assert confirmed.confirmed_at == clock.now
    assert confirmed.confirmed_at > order.created_at


def test_confirm_uses_explicit_timestamp(storage):
    order = storage.create_order(order_data())
    when = datetime(2024, 2, 1, 8, 30)
    assert storage.update_order_status(order.id, OrderStatus.CONFIRMED, when).confirmed_at == when


def test_reject_leaves_confirmed_at_unset(storage):
    order = storage.create_order(order_data())
    rejected = storage.update_order_status(order.id, "rejected")
    assert rejected.status == "rejected"
    assert rejected.confirmed_at is None


def test_complete_keeps_confirmation_time(storage):
    order = storage.create_order(order_data())
    confirmed = storage.update_order_status(order.id, "confirmed")
    completed = storage.update_order_status(order.id, "completed")
    assert completed.status == "completed"
    assert completed.confirmed_at == confirmed.confirmed_at


@pytest.mark.parametrize("path", [
    ["completed"],
    ["pending"],
    ["rejected", "confirmed"],
    ["confirmed", "rejected"],
    ["confirmed", "completed", "pending"],
])
def test_disallowed_transitions_raise(storage, path):
    order = storage.create_order(order_data())
    *allowed, last = path
    for status in allowed:
        storage.update_order_status(order.id, status)
    with pytest.raises(InvalidStatusTransition):
        storage.update_order_status(order.id, last)


def test_update_status_of_missing_order_returns_none(storage):
    assert storage.update_order_status(77, "confirmed") is None


def test_orders_by_status_are_filtered_and_newest_first(storage):
    first = storage.create_order(order_data())
    second = storage.create_order(order_data())
    third = storage.create_order(order_data())
    storage.update_order_status(second.id, "confirmed")

    pending = storage.get_orders_by_status("pending")
    assert [o.id for o in pending] == [third.id, first.id]
    assert all(o.status == "pending" for o in pending)
    assert [o.id for o in storage.get_all_orders()] == [third.id, second.id, first.id]


def test_orders_with_equal_timestamps_fall_back_to_id():
    fixed = datetime(2024, 1, 1)
    storage = MemStorage(seed=False, clock=lambda: fixed)
    ids = [storage.create_order(order_data()).id for _ in range(3)]
    assert [o.id for o in storage.get_all_orders()] == list(reversed(ids))


def test_place_order_creates_one_completed_transaction(storage):
    order, transaction = storage.place_order(order_data())
    assert transaction.order_id == order.id
    assert transaction.amount == 50000
    assert transaction.payment_method == "cash"
    assert transaction.status == "completed"
    assert storage.get_all_transactions() == [transaction]


def test_place_order_removes_order_when_transaction_fails(storage, monkeypatch):
    def boom(data):
        raise RuntimeError("ledger unavailable")

    monkeypatch.setattr(storage, "create_transaction", boom)
    with pytest.raises(RuntimeError):
        storage.place_order(order_data())
    assert storage.get_all_orders() == []


def test_transactions_by_date_range_is_inclusive(storage):
    transactions = [storage.place_order(order_data())[1] for _ in range(4)]
    start, end = transactions[1].created_at, transactions[2].created_at

    in_range = storage.get_transactions_by_date_range(start, end)
    assert [t.id for t in in_range] == [transactions[2].id, transactions[1].id]


def test_users(storage):
    user = storage.create_user({"username": "admin", "password": "1234"})
    assert storage.get_user(user.id) == user
    assert storage.get_user_by_username("admin") == user
    assert storage.get_user_by_username("nobody") is None
    assert "password" not in user.to_dict()
    with pytest.raises(DuplicateUsername):
        storage.create_user({"username": "admin", "password": "other"})
