"""Account and user-management routes."""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from .guards import admin_required, components, json_body, login_required


auth_bp = Blueprint("storefront_auth", __name__, url_prefix="/api/auth")


def _auth_service():
    return components()["auth_service"]


@auth_bp.post("/register")
def register():
    result = _auth_service().register(json_body())
    return jsonify(result), 201


@auth_bp.post("/login")
def login():
    payload = json_body()
    return jsonify(_auth_service().login(payload.get("email"), payload.get("password")))


@auth_bp.post("/refresh")
def refresh():
    return jsonify(_auth_service().refresh(json_body().get("refresh_token")))


@auth_bp.post("/logout")
@login_required
def logout():
    # tokens are stateless; the client drops them
    return jsonify({"success": True, "message": "Logged out"})


@auth_bp.get("/profile")
@login_required
def get_profile():
    return jsonify({"user": g.current_user})


@auth_bp.put("/profile")
@login_required
def update_profile():
    user = _auth_service().update_profile(g.current_user["id"], json_body())
    return jsonify({"user": user})


@auth_bp.get("/activity")
@login_required
def activity():
    return jsonify(_auth_service().get_activity(g.current_user["id"]))


@auth_bp.get("/users")
@admin_required
def list_users():
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", 10, type=int)
    return jsonify(_auth_service().list_users(page=page, page_size=limit))


@auth_bp.get("/users/<user_id>")
@admin_required
def get_user(user_id: str):
    return jsonify({"user": _auth_service().get_user(user_id)})


@auth_bp.post("/users")
@admin_required
def create_user():
    return jsonify({"user": _auth_service().create_user(json_body())}), 201


@auth_bp.delete("/users/<user_id>")
@admin_required
def delete_user(user_id: str):
    _auth_service().delete_user(user_id, acting_user_id=g.current_user["id"])
    return jsonify({"success": True})
