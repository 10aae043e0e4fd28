"""Bearer-token guards shared by the blueprints."""

from __future__ import annotations

from functools import wraps
from typing import Any, Dict, Optional

from flask import current_app, g, request

from ..common.errors import AuthError, ForbiddenError


def components() -> Dict[str, Any]:
    return current_app.extensions["storefront_components"]


def bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        token = bearer_token()
        if not token:
            raise AuthError("Authorization token is missing")
        g.current_user = components()["auth_service"].authenticate(token)
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    @login_required
    def wrapper(*args, **kwargs):
        if g.current_user.get("role") != "admin":
            raise ForbiddenError("Administrator access required")
        return view(*args, **kwargs)

    return wrapper


def json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}
