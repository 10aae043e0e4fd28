from typing import Any, Dict, Optional


def _money(value: Any) -> float:
    return float(value or 0)


def _iso(value: Any) -> Optional[str]:
    return value.isoformat() if value is not None else None


def to_user_dto(row: Any) -> Dict:
    # password hash never leaves the service layer
    return {
        "id": getattr(row, "id", None),
        "first_name": getattr(row, "first_name", None),
        "last_name": getattr(row, "last_name", None),
        "patronymic": getattr(row, "patronymic", None),
        "email": getattr(row, "email", None),
        "phone_number": getattr(row, "phone_number", None),
        "role": getattr(row, "role", None),
        "status": getattr(row, "status", None),
        "last_activity": _iso(getattr(row, "last_activity", None)),
        "created_at": _iso(getattr(row, "created_at", None)),
        "updated_at": _iso(getattr(row, "updated_at", None)),
    }


def to_category_dto(row: Any, *, with_relations: bool = False) -> Dict:
    data = {
        "id": getattr(row, "id", None),
        "name": getattr(row, "name", None),
        "description": getattr(row, "description", None),
        "parent_id": getattr(row, "parent_id", None),
    }
    if with_relations:
        data["children"] = [{"id": c.id, "name": c.name} for c in row.children]
        data["products"] = [{"id": p.id, "name": p.name, "price": _money(p.price)} for p in row.products]
    return data


def to_product_dto(row: Any) -> Dict:
    category = getattr(row, "category", None)
    return {
        "id": getattr(row, "id", None),
        "name": getattr(row, "name", None),
        "description": getattr(row, "description", None),
        "price": _money(getattr(row, "price", 0)),
        "quantity": getattr(row, "quantity", 0) or 0,
        "weight": getattr(row, "weight", 0) or 0,
        "unit": getattr(row, "unit", None),
        "image_url": getattr(row, "image_url", None),
        "category_id": getattr(row, "category_id", None),
        "category": {"id": category.id, "name": category.name} if category is not None else None,
    }


def to_cart_item_dto(row: Any) -> Dict:
    product = getattr(row, "product", None)
    return {
        "id": row.id,
        "cart_id": row.cart_id,
        "product_id": row.product_id,
        "quantity": row.quantity,
        "price_at_addition": _money(row.price_at_addition),
        "current_price": _money(product.price) if product is not None else None,
        "product": to_product_dto(product) if product is not None else None,
    }


def to_order_item_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "product_id": row.product_id,
        "name": row.name,
        "quantity": row.quantity,
        "price": _money(row.price),
        "total": _money(row.total),
    }


def to_order_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "total_amount": _money(row.total_amount),
        "delivery_address": row.delivery_address,
        "delivery_time": _iso(row.delivery_time),
        "delivery_cost": _money(row.delivery_cost),
        "comment": row.comment,
        "status": row.status,
        "paykeeper_id": row.paykeeper_id,
        "paid_at": _iso(row.paid_at),
        "created_at": _iso(row.created_at),
        "updated_at": _iso(row.updated_at),
        "items": [to_order_item_dto(it) for it in row.items],
    }
