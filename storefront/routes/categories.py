from __future__ import annotations

from flask import Blueprint, jsonify

from .guards import admin_required, components, json_body


categories_bp = Blueprint("storefront_categories", __name__, url_prefix="/api/categories")


def _catalog():
    return components()["catalog_service"]


@categories_bp.get("")
def list_categories():
    return jsonify({"categories": _catalog().list_categories()})


@categories_bp.get("/<category_id>")
def get_category(category_id: str):
    return jsonify(_catalog().get_category(category_id))


@categories_bp.post("")
@admin_required
def create_category():
    payload = json_body()
    category = _catalog().create_category(
        name=payload.get("name"),
        description=payload.get("description"),
        parent_id=payload.get("parent_id"),
    )
    return jsonify(category), 201


@categories_bp.put("/<category_id>")
@admin_required
def update_category(category_id: str):
    return jsonify(_catalog().update_category(category_id, json_body()))


@categories_bp.delete("/<category_id>")
@admin_required
def delete_category(category_id: str):
    _catalog().delete_category(category_id)
    return jsonify({"success": True})
