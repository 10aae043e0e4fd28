from typing import Dict, List, Optional, Tuple
import time

from ..db import SessionFactory
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import PRODUCT_UNITS, CartItem, Category, Product
from ..utils.dto import to_category_dto, to_product_dto
from ..utils.validators import ensure_positive_int, parse_money, require_text
from .logging import log_event


class CatalogService:
    """Category and product management.

    Responsibilities:
    - Category CRUD, including the parent/children hierarchy
    - Product CRUD with category checks
    - Cache product listings for a short time; any mutation clears the cache
    """

    _cache_ttl_seconds: int = 60

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory
        # naive in-process cache: key -> (ts, result)
        self._cache: Dict[Tuple, Tuple[float, List[Dict]]] = {}

    # --- categories ---

    def list_categories(self) -> List[Dict]:
        with self._session_factory() as session:
            rows = session.query(Category).order_by(Category.name.asc()).all()
            return [to_category_dto(r) for r in rows]

    def get_category(self, category_id: str) -> Dict:
        with self._session_factory() as session:
            category = session.get(Category, category_id)
            if not category:
                raise NotFoundError("Category not found")
            return to_category_dto(category, with_relations=True)

    def create_category(self, *, name: str, description: Optional[str] = None, parent_id: Optional[str] = None) -> Dict:
        name = require_text(name, "name")
        with self._session_factory() as session:
            if session.query(Category.id).filter(Category.name == name).first():
                raise ConflictError("A category with this name already exists")
            if parent_id and not session.get(Category, parent_id):
                raise ValidationError("Parent category does not exist", "parent_id")
            category = Category(name=name, description=(description or "").strip() or None, parent_id=parent_id or None)
            session.add(category)
            session.flush()
            return to_category_dto(category)

    def update_category(self, category_id: str, payload: Dict) -> Dict:
        with self._session_factory() as session:
            category = session.get(Category, category_id)
            if not category:
                raise NotFoundError("Category not found")
            if payload.get("name") is not None:
                name = require_text(payload["name"], "name")
                clash = (
                    session.query(Category.id)
                    .filter(Category.name == name, Category.id != category_id)
                    .first()
                )
                if clash:
                    raise ConflictError("A category with this name already exists")
                category.name = name
            if "description" in payload:
                category.description = (payload.get("description") or "").strip() or None
            if "parent_id" in payload:
                parent_id = payload.get("parent_id") or None
                if parent_id == category_id:
                    raise ValidationError("A category cannot be its own parent", "parent_id")
                if parent_id and not session.get(Category, parent_id):
                    raise ValidationError("Parent category does not exist", "parent_id")
                category.parent_id = parent_id
            session.flush()
            self.invalidate_cache()
            return to_category_dto(category)

    def delete_category(self, category_id: str) -> None:
        with self._session_factory() as session:
            category = session.get(Category, category_id)
            if not category:
                raise NotFoundError("Category not found")
            if category.products or category.children:
                raise ConflictError("Category still has products or subcategories")
            session.delete(category)

    # --- products ---

    def list_products(self, *, category_id: Optional[str] = None) -> List[Dict]:
        cache_key = (category_id or "",)
        now = time.time()
        cached = self._cache.get(cache_key)
        if cached and now - cached[0] <= self._cache_ttl_seconds:
            return cached[1]

        with self._session_factory() as session:
            q = session.query(Product)
            if category_id:
                q = q.filter(Product.category_id == category_id)
            rows = q.order_by(Product.name.asc()).all()
            result = [to_product_dto(r) for r in rows]
        self._cache[cache_key] = (now, result)
        return result

    def get_product(self, product_id: str) -> Dict:
        with self._session_factory() as session:
            product = session.get(Product, product_id)
            if not product:
                raise NotFoundError("Product not found")
            return to_product_dto(product)

    def create_product(self, payload: Dict) -> Dict:
        fields = {
            "name": require_text(payload.get("name"), "name"),
            "description": require_text(payload.get("description"), "description"),
            "price": parse_money(payload.get("price"), "price"),
            "quantity": ensure_positive_int(payload.get("quantity", 0), "quantity"),
            "weight": ensure_positive_int(payload.get("weight", 0), "weight"),
            "unit": self._unit(payload.get("unit") or "g"),
            "image_url": (payload.get("image_url") or "").strip() or None,
            "category_id": require_text(payload.get("category_id"), "category_id"),
        }
        with self._session_factory() as session:
            if not session.get(Category, fields["category_id"]):
                raise ValidationError("Category does not exist", "category_id")
            product = Product(**fields)
            session.add(product)
            session.flush()
            self.invalidate_cache()
            log_event("info", "product.created", product_id=product.id)
            return to_product_dto(product)

    def update_product(self, product_id: str, payload: Dict) -> Dict:
        with self._session_factory() as session:
            product = session.get(Product, product_id)
            if not product:
                raise NotFoundError("Product not found")
            if payload.get("category_id") is not None:
                if not session.get(Category, payload["category_id"]):
                    raise ValidationError("Category does not exist", "category_id")
                product.category_id = payload["category_id"]
            if payload.get("name") is not None:
                product.name = require_text(payload["name"], "name")
            if payload.get("description") is not None:
                product.description = require_text(payload["description"], "description")
            if payload.get("price") is not None:
                product.price = parse_money(payload["price"], "price")
            if payload.get("quantity") is not None:
                product.quantity = ensure_positive_int(payload["quantity"], "quantity")
            if payload.get("weight") is not None:
                product.weight = ensure_positive_int(payload["weight"], "weight")
            if payload.get("unit") is not None:
                product.unit = self._unit(payload["unit"])
            if "image_url" in payload:
                product.image_url = (payload.get("image_url") or "").strip() or None
            session.flush()
            session.refresh(product)
            self.invalidate_cache()
            return to_product_dto(product)

    def delete_product(self, product_id: str) -> None:
        """Delete a product and every cart line pointing at it."""
        with self._session_factory() as session:
            product = session.get(Product, product_id)
            if not product:
                raise NotFoundError("Product not found")
            session.query(CartItem).filter(CartItem.product_id == product_id).delete(synchronize_session=False)
            session.delete(product)
        self.invalidate_cache()
        log_event("info", "product.deleted", product_id=product_id)

    def invalidate_cache(self) -> None:
        self._cache.clear()

    @staticmethod
    def _unit(value: str) -> str:
        unit = str(value).strip().lower()
        if unit not in PRODUCT_UNITS:
            raise ValidationError(f"unit must be one of {', '.join(PRODUCT_UNITS)}", "unit")
        return unit
