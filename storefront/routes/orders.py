"""Order, payment and payment-provider webhook routes."""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from .guards import admin_required, components, json_body, login_required


orders_bp = Blueprint("storefront_orders", __name__, url_prefix="/api/orders")


def _orders():
    return components()["order_service"]


@orders_bp.post("")
@login_required
def create_order():
    order = _orders().create_order(g.current_user["id"], json_body())
    return jsonify(order), 201


@orders_bp.get("")
@login_required
def list_orders():
    return jsonify({"orders": _orders().list_orders(g.current_user["id"])})


@orders_bp.get("/<order_id>")
@login_required
def get_order(order_id: str):
    return jsonify(_orders().get_order(order_id, user_id=g.current_user["id"]))


@orders_bp.put("/<order_id>/status")
@admin_required
def update_order_status(order_id: str):
    return jsonify(_orders().update_status(order_id, json_body().get("status")))


@orders_bp.delete("/<order_id>")
@login_required
def delete_order(order_id: str):
    _orders().delete_order(order_id, user_id=g.current_user["id"])
    return jsonify({"success": True})


@orders_bp.post("/payment")
@login_required
def create_payment():
    return jsonify(_orders().generate_payment(g.current_user["id"], json_body()))


@orders_bp.post("/paykeeper-webhook")
def paykeeper_webhook():
    # PayKeeper posts form data; JSON is accepted for manual replays
    payload = request.form.to_dict() if request.form else json_body()
    return jsonify(_orders().handle_webhook(payload))


@orders_bp.get("/<order_id>/payment-status")
@login_required
def payment_status(order_id: str):
    return jsonify(_orders().check_payment_status(order_id, user_id=g.current_user["id"]))


@orders_bp.post("/check-payments")
@login_required
def check_payments():
    started = components()["reconciler"].trigger_async()
    message = "Payment check started" if started else "Payment check already running"
    return jsonify({"started": started, "message": message}), 202
