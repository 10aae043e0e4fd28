from __future__ import annotations

from flask import Blueprint, jsonify, request

from .guards import admin_required, components, json_body


products_bp = Blueprint("storefront_products", __name__, url_prefix="/api/products")


def _catalog():
    return components()["catalog_service"]


@products_bp.get("")
def list_products():
    category_id = request.args.get("category_id") or None
    return jsonify({"products": _catalog().list_products(category_id=category_id)})


@products_bp.get("/<product_id>")
def get_product(product_id: str):
    return jsonify(_catalog().get_product(product_id))


@products_bp.post("")
@admin_required
def create_product():
    return jsonify(_catalog().create_product(json_body())), 201


@products_bp.put("/<product_id>")
@admin_required
def update_product(product_id: str):
    return jsonify(_catalog().update_product(product_id, json_body()))


@products_bp.delete("/<product_id>")
@admin_required
def delete_product(product_id: str):
    _catalog().delete_product(product_id)
    return jsonify({"success": True})
