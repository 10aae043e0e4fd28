from __future__ import annotations

from flask import Blueprint, g, jsonify

from .guards import components, json_body, login_required


cart_bp = Blueprint("storefront_cart", __name__, url_prefix="/api/cart")


def _cart():
    return components()["cart_service"]


@cart_bp.get("")
@login_required
def get_cart():
    return jsonify(_cart().get_cart(g.current_user["id"]))


@cart_bp.post("/add")
@login_required
def add_to_cart():
    payload = json_body()
    view = _cart().add_item(
        g.current_user["id"],
        product_id=payload.get("product_id"),
        quantity=payload.get("quantity", 1),
    )
    return jsonify(view)


@cart_bp.put("/update")
@login_required
def update_cart_item():
    payload = json_body()
    view = _cart().update_item(
        g.current_user["id"],
        product_id=payload.get("product_id"),
        quantity=payload.get("quantity"),
    )
    return jsonify(view)


@cart_bp.delete("/remove/<product_id>")
@login_required
def remove_from_cart(product_id: str):
    return jsonify(_cart().remove_item(g.current_user["id"], product_id=product_id))


@cart_bp.delete("/clear")
@login_required
def clear_cart():
    return jsonify(_cart().clear(g.current_user["id"]))
