"""
Sales summary, recomputed from the store on every call.
"""

import logging
import math

from models import LineItem, OrderStatus, TransactionStatus

logger = logging.getLogger(__name__)

NO_DATA = "No data"
RECENT_LIMIT = 10


def _round_half_up(value):
    return int(math.floor(value + 0.5))


def _in_range(moment, start, end):
    return start is None or end is None or (moment is not None and start <= moment <= end)


def top_menu_item(orders, storage=None):
    """
    Name with the highest cumulative quantity across ``orders``.

    Orders are visited oldest first and line items in stored order; on a tie
    the name seen first wins. Line items without a name fall back to the live
    menu item when ``storage`` is given. A malformed blob skips its order; a
    malformed entry skips only that entry.
    """
    counts = {}
    for order in sorted(orders, key=lambda o: (o.created_at, o.id)):
        try:
            entries = order.item_entries()
        except (ValueError, TypeError) as e:
            logger.debug("Skipping items of order %s: %s", order.id, e)
            continue

        for entry in entries:
            try:
                line = LineItem.from_dict(entry)
            except ValueError as e:
                logger.debug("Skipping line item of order %s: %s", order.id, e)
                continue

            name = line.name
            if (not name and storage is not None
                    and isinstance(line.menu_item_id, int)
                    and not isinstance(line.menu_item_id, bool)):
                menu_item = storage.get_menu_item(line.menu_item_id)
                name = menu_item.name if menu_item else None
            if not name:
                continue
            counts[name] = counts.get(name, 0) + line.quantity

    best_name, best_qty = NO_DATA, 0
    # dicts keep first-seen order, and a strict > keeps the earlier name on ties
    for name, qty in counts.items():
        if qty > best_qty:
            best_name, best_qty = name, qty
    return best_name


def build_summary(storage, start=None, end=None):
    if start is not None and end is not None:
        transactions = storage.get_transactions_by_date_range(start, end)
    else:
        transactions = storage.get_all_transactions()

    orders = [o for o in storage.get_all_orders() if _in_range(o.created_at, start, end)]
    completed = [o for o in orders if o.status == OrderStatus.COMPLETED.value]

    revenue = sum(
        t.amount for t in transactions if t.status == TransactionStatus.COMPLETED.value
    )
    avg = _round_half_up(revenue / len(completed)) if completed else 0

    return {
        "totalOrders": len(completed),
        "totalRevenue": revenue,
        "avgOrderValue": avg,
        "topMenuItem": top_menu_item(orders, storage),
        "recentTransactions": [t.to_dict() for t in transactions[:RECENT_LIMIT]],
    }
