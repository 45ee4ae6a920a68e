from flask import request, jsonify
from pydantic import ValidationError

from models import Category, OrderStatus
from reports import build_summary
from schemas import (
    MenuItemCreate, MenuItemUpdate, OrderCreate, StatusUpdate,
    validation_details, parse_date_range, parse_enum,
)
from storage import InvalidStatusTransition


def json_error(message, code, **extra):
    return jsonify({"error": message, **extra}), code


def register_routes(app, storage):
    """Attach every /api endpoint to ``app``, bound to the given repository."""

    # ===========================
    # Menu
    # ===========================

    @app.route('/api/menu', methods=['GET'])
    def list_menu():
        try:
            category = parse_enum(Category, request.args.get("category"))
        except ValueError:
            return json_error("Invalid category", 400)
        try:
            if category:
                items = storage.get_menu_items_by_category(category)
            else:
                items = storage.get_all_menu_items()
            return jsonify([item.to_dict() for item in items]), 200
        except Exception as e:
            app.logger.error("Error in list_menu: %s", e)
            return json_error("Failed to fetch menu items", 500)

    @app.route('/api/menu/categories', methods=['GET'])
    def list_categories():
        return jsonify([{"id": c.value, "label": c.label} for c in Category]), 200

    @app.route('/api/menu/<int:item_id>', methods=['GET'])
    def get_menu_item(item_id):
        try:
            item = storage.get_menu_item(item_id)
            if not item:
                return json_error("Menu item not found", 404)
            return jsonify(item.to_dict()), 200
        except Exception as e:
            app.logger.error("Error in get_menu_item: %s", e)
            return json_error("Failed to fetch menu item", 500)

    @app.route('/api/menu', methods=['POST'])
    def create_menu_item():
        """
        Create a menu item. Expects name, description, price (smallest
        currency unit), category and optionally image and available.
        """
        try:
            payload = MenuItemCreate.model_validate(request.get_json(silent=True) or {})
        except ValidationError as e:
            return json_error("Invalid menu item data", 400, details=validation_details(e))
        try:
            item = storage.create_menu_item(payload.model_dump())
            app.logger.info("Menu item %s created", item.id)
            return jsonify(item.to_dict()), 201
        except Exception as e:
            app.logger.error("Error in create_menu_item: %s", e)
            return json_error("Failed to create menu item", 500)

    @app.route('/api/menu/<int:item_id>', methods=['PUT'])
    def update_menu_item(item_id):
        try:
            payload = MenuItemUpdate.model_validate(request.get_json(silent=True) or {})
        except ValidationError as e:
            return json_error("Invalid menu item data", 400, details=validation_details(e))
        try:
            item = storage.update_menu_item(item_id, payload.changes())
            if not item:
                return json_error("Menu item not found", 404)
            return jsonify(item.to_dict()), 200
        except Exception as e:
            app.logger.error("Error in update_menu_item: %s", e)
            return json_error("Failed to update menu item", 500)

    @app.route('/api/menu/<int:item_id>', methods=['DELETE'])
    def delete_menu_item(item_id):
        try:
            if not storage.delete_menu_item(item_id):
                return json_error("Menu item not found", 404)
            app.logger.info("Menu item %s deleted", item_id)
            return jsonify({"success": True}), 200
        except Exception as e:
            app.logger.error("Error in delete_menu_item: %s", e)
            return json_error("Failed to delete menu item", 500)

    # ===========================
    # Orders
    # ===========================

    @app.route('/api/orders', methods=['GET'])
    def list_orders():
        """Most recent first. The admin dashboard polls ?status=pending."""
        try:
            status = parse_enum(OrderStatus, request.args.get("status"))
        except ValueError:
            return json_error("Invalid status", 400)
        try:
            if status:
                orders = storage.get_orders_by_status(status)
            else:
                orders = storage.get_all_orders()
            return jsonify([order.to_dict() for order in orders]), 200
        except Exception as e:
            app.logger.error("Error in list_orders: %s", e)
            return json_error("Failed to fetch orders", 500)

    @app.route('/api/orders/<int:order_id>', methods=['GET'])
    def get_order(order_id):
        try:
            order = storage.get_order(order_id)
            if not order:
                return json_error("Order not found", 404)
            return jsonify(order.to_dict()), 200
        except Exception as e:
            app.logger.error("Error in get_order: %s", e)
            return json_error("Failed to fetch order", 500)

    @app.route('/api/orders', methods=['POST'])
    def create_order():
        """
        Checkout. Persists the order as pending together with one completed
        transaction; payment is simulated, nothing is charged.
        """
        try:
            payload = OrderCreate.model_validate(request.get_json(silent=True) or {})
        except ValidationError as e:
            return json_error("Invalid order data", 400, details=validation_details(e))
        try:
            order, transaction = storage.place_order(payload.model_dump(exclude={"status"}))
            app.logger.info("Order %s placed (transaction %s, %s %s)",
                            order.id, transaction.id, order.payment_method, order.total_amount)
            return jsonify(order.to_dict()), 201
        except Exception as e:
            app.logger.error("Error in create_order: %s", e)
            return json_error("Failed to create order", 500)

    @app.route('/api/orders/<int:order_id>/status', methods=['PUT'])
    def update_order_status(order_id):
        """
        Move an order along pending -> confirmed|rejected, confirmed -> completed.
        Expects {"status": ..., "confirmedAt": optional ISO timestamp}.
        """
        try:
            payload = StatusUpdate.model_validate(request.get_json(silent=True) or {})
        except ValidationError as e:
            return json_error("Invalid status", 400, details=validation_details(e))
        try:
            order = storage.update_order_status(order_id, payload.status, payload.confirmed_at)
            if not order:
                return json_error("Order not found", 404)
            app.logger.info("Order %s is now %s", order.id, order.status)
            return jsonify(order.to_dict()), 200
        except InvalidStatusTransition as e:
            return json_error("Invalid status transition", 409,
                              **{"from": e.current, "to": e.target})
        except Exception as e:
            app.logger.error("Error in update_order_status: %s", e)
            return json_error("Failed to update order status", 500)

    # ===========================
    # Transactions and reports
    # ===========================

    @app.route('/api/transactions', methods=['GET'])
    def list_transactions():
        try:
            start, end = parse_date_range(request.args)
        except ValueError:
            return json_error("Invalid date range", 400)
        try:
            if start is not None:
                transactions = storage.get_transactions_by_date_range(start, end)
            else:
                transactions = storage.get_all_transactions()
            return jsonify([t.to_dict() for t in transactions]), 200
        except Exception as e:
            app.logger.error("Error in list_transactions: %s", e)
            return json_error("Failed to fetch transactions", 500)

    @app.route('/api/reports/summary', methods=['GET'])
    def report_summary():
        try:
            start, end = parse_date_range(request.args)
        except ValueError:
            return json_error("Invalid date range", 400)
        try:
            return jsonify(build_summary(storage, start, end)), 200
        except Exception as e:
            app.logger.error("Error in report_summary: %s", e)
            return json_error("Failed to generate report summary", 500)

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({"status": "ok", "storage": storage.backend}), 200
