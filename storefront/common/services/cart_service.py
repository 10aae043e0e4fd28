from decimal import Decimal
from typing import Dict, Optional

from ..db import SessionFactory
from ..errors import NotFoundError, ValidationError
from ..models import Cart, CartItem, Product
from ..utils.dto import to_cart_item_dto
from ..utils.validators import parse_quantity


class CartService:
    """Per-user cart operations backed by DB.

    Every public method returns the full cart view:
    ``{"cart_id", "items", "total"}`` where ``total`` is computed from the
    price captured when each line was added.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    @classmethod
    def _view(cls, cart: Optional[Cart]) -> Dict:
        if cart is None:
            return {"cart_id": None, "items": [], "total": 0.0}
        total = sum((cls._line_price(it) * it.quantity for it in cart.items), Decimal("0"))
        return {
            "cart_id": cart.id,
            "items": [to_cart_item_dto(it) for it in cart.items],
            "total": float(total),
        }

    @staticmethod
    def _line_price(item: CartItem) -> Decimal:
        # a captured price of 0 is still the captured price
        if item.price_at_addition is not None:
            return Decimal(str(item.price_at_addition))
        return Decimal(str(item.product.price))

    @staticmethod
    def _find_cart(session, user_id: str) -> Optional[Cart]:
        return session.query(Cart).filter(Cart.user_id == user_id).first()

    def get_cart(self, user_id: str) -> Dict:
        with self._session_factory() as session:
            return self._view(self._find_cart(session, user_id))

    def add_item(self, user_id: str, *, product_id: str, quantity: int = 1) -> Dict:
        if not product_id:
            raise ValidationError("product_id required", "product_id")
        qnty = parse_quantity(quantity if quantity is not None else 1)
        if qnty < 1:
            raise ValidationError("quantity must be >= 1", "quantity")
        with self._session_factory() as session:
            prod = session.get(Product, product_id)
            if not prod:
                raise NotFoundError("Product not found")
            if qnty > int(prod.quantity):
                raise ValidationError(f"Not enough stock. Available: {prod.quantity}")

            cart = self._find_cart(session, user_id)
            if cart is None:
                cart = Cart(user_id=user_id)
                session.add(cart)
                session.flush()

            existing = next((it for it in cart.items if it.product_id == product_id), None)
            if existing:
                new_q = existing.quantity + qnty
                if new_q > int(prod.quantity):
                    raise ValidationError(
                        f"Not enough stock. Available: {prod.quantity}, requested: {new_q}"
                    )
                existing.quantity = new_q
            else:
                cart.items.append(
                    CartItem(product_id=product_id, product=prod, quantity=qnty, price_at_addition=prod.price)
                )
            session.flush()
            return self._view(cart)

    def update_item(self, user_id: str, *, product_id: str, quantity) -> Dict:
        """Set a line's quantity; anything below 1 removes the line."""
        if not product_id or quantity is None:
            raise ValidationError("product_id and quantity are required")
        qnty = parse_quantity(quantity)
        if qnty < 1:
            return self.remove_item(user_id, product_id=product_id)
        with self._session_factory() as session:
            cart = self._find_cart(session, user_id)
            if cart is None:
                raise NotFoundError("Cart not found")
            prod = session.get(Product, product_id)
            if not prod:
                raise NotFoundError("Product not found")
            if qnty > int(prod.quantity):
                raise ValidationError(f"Not enough stock. Available: {prod.quantity}")
            item = next((it for it in cart.items if it.product_id == product_id), None)
            if item is None:
                cart.items.append(
                    CartItem(product_id=product_id, product=prod, quantity=qnty, price_at_addition=prod.price)
                )
            else:
                item.quantity = qnty
            session.flush()
            return self._view(cart)

    def remove_item(self, user_id: str, *, product_id: str) -> Dict:
        if not product_id:
            raise ValidationError("product_id required", "product_id")
        with self._session_factory() as session:
            cart = self._find_cart(session, user_id)
            if cart is None:
                raise NotFoundError("Cart not found")
            item = next((it for it in cart.items if it.product_id == product_id), None)
            if item is None:
                raise NotFoundError("Product not in cart")
            cart.items.remove(item)
            session.flush()
            return self._view(cart)

    def clear(self, user_id: str) -> Dict:
        with self._session_factory() as session:
            cart = self._find_cart(session, user_id)
            if cart is None:
                raise NotFoundError("Cart not found")
            cart.items.clear()
            session.flush()
            return self._view(cart)
