# Overview: Flask API routes for the cash-flow ledger; parses input and returns JSON responses.

"""
Cash-flow ledger routes.

Banks are seeded with the default account set on first read.
Amounts are accepted as JSON numbers or numeric strings and returned as
strings to keep them exact.
"""

from flask import Blueprint, request, current_app

from ..services.registry import get_ledgers
from ..validation import ValidationError, NotFoundError


cashflow_bp = Blueprint("cashflow", __name__, url_prefix="/api/cashflow")


def _payload() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


@cashflow_bp.get("/banks")
def list_banks_route():
    banks = get_ledgers().cashflow.list_banks()
    return {"items": [b.to_dict() for b in banks], "count": len(banks)}, 200


@cashflow_bp.post("/banks/<bank_id>/balance")
def update_bank_balance_route(bank_id):
    """
    Adjust a bank balance directly.

    Body: {amount, is_debit}
    """
    payload = _payload()
    if "amount" not in payload:
        return {"error": "Missing required fields: amount"}, 400
    is_debit = payload.get("is_debit", False)
    if not isinstance(is_debit, bool):
        return {"error": "is_debit must be true or false"}, 400

    try:
        bank = get_ledgers().cashflow.update_bank_balance(bank_id, payload["amount"], is_debit)
    except ValidationError as e:
        return {"error": str(e)}, 400
    if bank is None:
        return {"error": "bank not found"}, 404
    return {"bank": bank.to_dict()}, 200


@cashflow_bp.get("/transactions")
def list_transactions_route():
    """
    List ledger entries in insertion order.

    Query parameters:
    - bank_id: restrict to one bank
    """
    transactions = get_ledgers().cashflow.list_transactions(request.args.get("bank_id"))
    return {"items": [t.to_dict() for t in transactions], "count": len(transactions)}, 200


@cashflow_bp.post("/transactions")
def record_transaction_route():
    """
    Post a debit or credit against a bank.

    Body: {bank_id, debit?, credit?, description?, paid_to?, received_from?,
           pv_number?, cheque_number?, fs_number?, remark?, date?,
           transaction_type?}
    """
    payload = _payload()
    bank_id = payload.pop("bank_id", None)
    if not bank_id:
        return {"error": "Missing required fields: bank_id"}, 400

    debit = payload.pop("debit", 0)
    credit = payload.pop("credit", 0)
    try:
        tx = get_ledgers().cashflow.record_transaction(bank_id, debit=debit, credit=credit, **payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to record cash-flow transaction")
        return {"error": "Failed to record transaction"}, 500
    return {"transaction": tx.to_dict()}, 201


@cashflow_bp.get("/payables")
def list_payables_route():
    payables = get_ledgers().cashflow.list_payables()
    return {"items": [p.to_dict() for p in payables], "count": len(payables)}, 200


@cashflow_bp.post("/payables")
def create_payable_route():
    try:
        payable = get_ledgers().cashflow.create_payable(_payload())
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"payable": payable.to_dict()}, 201


@cashflow_bp.patch("/payables/<payable_id>")
def update_payable_route(payable_id):
    try:
        payable = get_ledgers().cashflow.update_payable(payable_id, _payload())
    except ValidationError as e:
        return {"error": str(e)}, 400
    if payable is None:
        return {"error": "payable not found"}, 404
    return {"payable": payable.to_dict()}, 200


@cashflow_bp.get("/receivables")
def list_receivables_route():
    receivables = get_ledgers().cashflow.list_receivables()
    return {"items": [r.to_dict() for r in receivables], "count": len(receivables)}, 200


@cashflow_bp.post("/receivables")
def create_receivable_route():
    try:
        receivable = get_ledgers().cashflow.create_receivable(_payload())
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"receivable": receivable.to_dict()}, 201


@cashflow_bp.patch("/receivables/<receivable_id>")
def update_receivable_route(receivable_id):
    try:
        receivable = get_ledgers().cashflow.update_receivable(receivable_id, _payload())
    except ValidationError as e:
        return {"error": str(e)}, 400
    if receivable is None:
        return {"error": "receivable not found"}, 404
    return {"receivable": receivable.to_dict()}, 200


@cashflow_bp.get("/summary")
def financial_summary_route():
    summary = get_ledgers().cashflow.compute_financial_summary()
    return {"summary": summary.to_dict()}, 200
