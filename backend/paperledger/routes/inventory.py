# Overview: Flask API routes for the inventory ledger; parses input and returns JSON responses.

"""
Inventory ledger routes.

Errors:
- 400: ValidationError (bad field, non-positive quantity/price)
- 404: unknown item, supplier or receipt
- 409: InsufficientStockError / ConflictError
"""

from flask import Blueprint, request, current_app

from ..services.registry import get_ledgers
from ..services.reporting_service import build_inventory_report
from ..validation import ValidationError, ConflictError, InsufficientStockError


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _payload() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


# Items

@inventory_bp.get("/items")
def list_items_route():
    """
    List inventory items.

    Query parameters:
    - low_stock: only items at or below min_stock_level (default: false)
    """
    ledger = get_ledgers().inventory
    if request.args.get("low_stock", "false").lower() == "true":
        items = ledger.low_stock_items()
    else:
        items = ledger.list_items()
    return {"items": [i.to_dict() for i in items], "count": len(items)}, 200


@inventory_bp.post("/items")
def create_item_route():
    try:
        item = get_ledgers().inventory.create_item(_payload())
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"item": item.to_dict()}, 201


@inventory_bp.get("/items/<item_id>")
def get_item_route(item_id):
    item = get_ledgers().inventory.get_item(item_id)
    if item is None:
        return {"error": "item not found"}, 404
    return {"item": item.to_dict()}, 200


@inventory_bp.patch("/items/<item_id>")
def update_item_route(item_id):
    try:
        item = get_ledgers().inventory.update_item(item_id, _payload())
    except ValidationError as e:
        return {"error": str(e)}, 400
    if item is None:
        return {"error": "item not found"}, 404
    return {"item": item.to_dict()}, 200


# Suppliers

@inventory_bp.get("/suppliers")
def list_suppliers_route():
    suppliers = get_ledgers().inventory.list_suppliers()
    return {"items": [s.to_dict() for s in suppliers], "count": len(suppliers)}, 200


@inventory_bp.post("/suppliers")
def create_supplier_route():
    try:
        supplier = get_ledgers().inventory.create_supplier(_payload())
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"supplier": supplier.to_dict()}, 201


@inventory_bp.patch("/suppliers/<supplier_id>")
def update_supplier_route(supplier_id):
    try:
        supplier = get_ledgers().inventory.update_supplier(supplier_id, _payload())
    except ValidationError as e:
        return {"error": str(e)}, 400
    if supplier is None:
        return {"error": "supplier not found"}, 404
    return {"supplier": supplier.to_dict()}, 200


@inventory_bp.get("/suppliers/<supplier_id>/collections")
def supplier_collections_route(supplier_id):
    collections = get_ledgers().inventory.collections_for_supplier(supplier_id)
    return {"items": [c.to_dict() for c in collections], "count": len(collections)}, 200


# Collections and sales

@inventory_bp.get("/collections")
def list_collections_route():
    collections = get_ledgers().inventory.list_collections()
    return {"items": [c.to_dict() for c in collections], "count": len(collections)}, 200


@inventory_bp.post("/collections")
def record_collection_route():
    """
    Record material collected from a supplier.

    Body: {supplier_id, item_id, quantity, unit_price, notes?, image?,
           supplier_name?, item_name?}

    Returns the transaction and its receipt.
    """
    payload = _payload()
    missing = [f for f in ("supplier_id", "item_id", "quantity", "unit_price") if f not in payload]
    if missing:
        return {"error": f"Missing required fields: {', '.join(missing)}"}, 400

    ledger = get_ledgers().inventory
    try:
        tx = ledger.record_collection(
            payload["supplier_id"],
            payload["item_id"],
            payload["quantity"],
            payload["unit_price"],
            notes=payload.get("notes"),
            image=payload.get("image"),
            supplier_name=payload.get("supplier_name"),
            item_name=payload.get("item_name"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to record collection")
        return {"error": "Failed to record collection"}, 500

    receipt = ledger.find_receipt(tx.receipt_number)
    return {"transaction": tx.to_dict(), "receipt": receipt.to_dict() if receipt else None}, 201


@inventory_bp.get("/sales")
def list_sales_route():
    sales = get_ledgers().inventory.list_sales()
    return {"items": [s.to_dict() for s in sales], "count": len(sales)}, 200


@inventory_bp.post("/sales")
def record_sale_route():
    """
    Sell material out of stock.

    Body: {item_id, quantity, unit_price, payment_method?, customer_name?}

    409 with details {item_id, requested_quantity, on_hand} when stock is short.
    """
    payload = _payload()
    missing = [f for f in ("item_id", "quantity", "unit_price") if f not in payload]
    if missing:
        return {"error": f"Missing required fields: {', '.join(missing)}"}, 400

    ledger = get_ledgers().inventory
    try:
        tx = ledger.record_sale(
            payload["item_id"],
            payload["quantity"],
            payload["unit_price"],
            payment_method=payload.get("payment_method", "cash"),
            customer_name=payload.get("customer_name"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except InsufficientStockError as e:
        return {"error": str(e), "details": e.details}, 409
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return {"error": "Failed to record sale"}, 500

    receipt = ledger.find_receipt(tx.receipt_number)
    return {"transaction": tx.to_dict(), "receipt": receipt.to_dict() if receipt else None}, 201


# Receipts and reports

@inventory_bp.get("/receipts")
def list_receipts_route():
    receipts = get_ledgers().inventory.list_receipts()
    return {"items": [r.to_dict() for r in receipts], "count": len(receipts)}, 200


@inventory_bp.get("/receipts/<receipt_number>")
def get_receipt_route(receipt_number):
    receipt = get_ledgers().inventory.find_receipt(receipt_number.strip().upper())
    if receipt is None:
        return {"error": "receipt not found"}, 404
    return {"receipt": receipt.to_dict()}, 200


@inventory_bp.get("/report")
def inventory_report_route():
    report = build_inventory_report(get_ledgers().inventory)
    return {"report": report.to_dict()}, 200
