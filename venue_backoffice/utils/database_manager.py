"""
Database Manager - Supabase data access for venues, staff and menus
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from venue_backoffice.database.models import STAFF_PROFILES_RPC, STAFF_ROLES, TABLES, UserRole
from venue_backoffice.services.errors import TransportOrServerError
from venue_backoffice.utils.cache import Cache
from venue_backoffice.utils.storage import build_image_path

STAFF_ROLE_VALUES = {role.value for role in STAFF_ROLES}


def _remote(action: str, call: Callable[[], Any]) -> Any:
    try:
        return call()
    except Exception as e:
        logging.error(f"Error {action}: {e}")
        raise TransportOrServerError(str(e)) from e


class DatabaseManager:
    """Reads go through the cache, every mutation invalidates the keys it touches."""

    def __init__(self, backend, cache: Optional[Cache] = None, images_bucket: str = "product-images"):
        self.backend = backend
        self.cache = cache if cache is not None else Cache()
        self.images_bucket = images_bucket

    # Venues

    def get_venues(self) -> List[Dict[str, Any]]:
        return self.cache.get_or_set(("venues",), lambda: _remote(
            "fetching venues",
            lambda: self.backend.select(TABLES['VENUES'], order=[("created_at", False)]),
        ))

    def get_venue(self, venue_id: str) -> Optional[Dict[str, Any]]:
        def load():
            rows = _remote(f"fetching venue {venue_id}",
                           lambda: self.backend.select(TABLES['VENUES'], {"id": venue_id}))
            return rows[0] if rows else None
        return self.cache.get_or_set(("venue", venue_id), load)

    def create_venue(self, data: Dict[str, Any]) -> Dict[str, Any]:
        venue = _remote("creating venue", lambda: self.backend.insert(TABLES['VENUES'], data))
        self.cache.invalidate(("venues",))
        return venue

    def update_venue(self, venue_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = _remote(f"updating venue {venue_id}",
                       lambda: self.backend.update(TABLES['VENUES'], data, {"id": venue_id}))
        self.invalidate_venue(venue_id)
        return rows[0] if rows else None

    def delete_venue(self, venue_id: str) -> bool:
        rows = _remote(f"deleting venue {venue_id}",
                       lambda: self.backend.delete(TABLES['VENUES'], {"id": venue_id}))
        self.invalidate_venue(venue_id)
        # The store nulls venue_id on every profile that pointed here
        self.invalidate_staff(venue_id=venue_id)
        self.cache.invalidate(("profile",))
        return bool(rows)

    def invalidate_venue(self, venue_id: str) -> None:
        self.cache.invalidate(("venues",))
        self.cache.invalidate(("venue", venue_id))

    # Profiles and staff

    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        def load():
            rows = _remote(f"fetching profile {user_id}",
                           lambda: self.backend.select(TABLES['PROFILES'], {"id": user_id}))
            return rows[0] if rows else None
        return self.cache.get_or_set(("profile", user_id), load)

    def get_staff_profiles(self) -> List[Dict[str, Any]]:
        """Managers and bartenders with their emails, admins excluded."""
        def load():
            data = _remote("fetching staff profiles", lambda: self.backend.rpc(STAFF_PROFILES_RPC))
            if not isinstance(data, list):
                logging.error(f"RPC {STAFF_PROFILES_RPC} did not return a list: {data!r}")
                return []
            return [
                row for row in data
                if isinstance(row, dict) and isinstance(row.get("id"), str)
                and row.get("role") in STAFF_ROLE_VALUES
            ]
        return self.cache.get_or_set(("staffProfiles",), load)

    def get_venue_staff(self, venue_id: str) -> List[Dict[str, Any]]:
        return self.cache.get_or_set(("venue-staff", venue_id), lambda: _remote(
            f"fetching staff for venue {venue_id}",
            lambda: self.backend.select(
                TABLES['PROFILES'],
                {"venue_id": venue_id, "role": UserRole.BARTENDER.value},
                order=[("created_at", False)],
            ),
        ))

    def invalidate_staff(self, venue_id: Optional[str] = None, user_id: Optional[str] = None) -> None:
        self.cache.invalidate(("staffProfiles",))
        if venue_id:
            self.cache.invalidate(("venue-staff", venue_id))
        if user_id:
            self.cache.invalidate(("profile", user_id))

    # Categories

    def get_categories(self, venue_id: str) -> List[Dict[str, Any]]:
        return self.cache.get_or_set(("categories", venue_id), lambda: _remote(
            f"fetching categories for venue {venue_id}",
            lambda: self.backend.select(
                TABLES['CATEGORIES'], {"venue_id": venue_id},
                order=[("display_order", True), ("name", True)],
            ),
        ))

    def get_category(self, category_id: str) -> Optional[Dict[str, Any]]:
        rows = _remote(f"fetching category {category_id}",
                       lambda: self.backend.select(TABLES['CATEGORIES'], {"id": category_id}))
        return rows[0] if rows else None

    def create_category(self, venue_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        row = {**data, "venue_id": venue_id}
        category = _remote("creating category", lambda: self.backend.insert(TABLES['CATEGORIES'], row))
        self.cache.invalidate(("categories", venue_id))
        return category

    def update_category(self, category_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = _remote(f"updating category {category_id}",
                       lambda: self.backend.update(TABLES['CATEGORIES'], data, {"id": category_id}))
        if rows:
            self.cache.invalidate(("categories", rows[0].get("venue_id")))
        return rows[0] if rows else None

    def delete_category(self, category_id: str) -> bool:
        """Products keep existing; the store nulls their category_id."""
        category = self.get_category(category_id)
        if not category:
            return False
        _remote(f"deleting category {category_id}",
                lambda: self.backend.delete(TABLES['CATEGORIES'], {"id": category_id}))
        venue_id = category.get("venue_id")
        self.cache.invalidate(("categories", venue_id))
        self.cache.invalidate(("products", venue_id))
        self.cache.invalidate(("products", "by-category", category_id))
        return True

    # Products

    def get_products(self, venue_id: str) -> List[Dict[str, Any]]:
        return self.cache.get_or_set(("products", venue_id), lambda: _remote(
            f"fetching products for venue {venue_id}",
            lambda: self.backend.select(
                TABLES['PRODUCTS'], {"venue_id": venue_id},
                order=[("category_id", True), ("name", True)],
            ),
        ))

    def get_products_by_category(self, category_id: str) -> List[Dict[str, Any]]:
        return self.cache.get_or_set(("products", "by-category", category_id), lambda: _remote(
            f"fetching products for category {category_id}",
            lambda: self.backend.select(
                TABLES['PRODUCTS'], {"category_id": category_id}, order=[("name", True)],
            ),
        ))

    def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        rows = _remote(f"fetching product {product_id}",
                       lambda: self.backend.select(TABLES['PRODUCTS'], {"id": product_id}))
        return rows[0] if rows else None

    def create_product(self, venue_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        row = {**data, "venue_id": venue_id}
        product = _remote("creating product", lambda: self.backend.insert(TABLES['PRODUCTS'], row))
        self._invalidate_product(product)
        return product

    def update_product(self, product_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        before = self.get_product(product_id)
        rows = _remote(f"updating product {product_id}",
                       lambda: self.backend.update(TABLES['PRODUCTS'], data, {"id": product_id}))
        if before:
            self._invalidate_product(before)
        if rows:
            self._invalidate_product(rows[0])
        return rows[0] if rows else None

    def delete_product(self, product_id: str) -> bool:
        """Remove the stored image first; a failed image delete is logged, not raised."""
        product = self.get_product(product_id)
        if not product:
            return False
        storage_path = product.get("storage_path")
        if storage_path:
            try:
                self.backend.remove(self.images_bucket, [storage_path])
            except Exception as e:
                logging.error(f"Error deleting product image {storage_path}: {e}")
        _remote(f"deleting product {product_id}",
                lambda: self.backend.delete(TABLES['PRODUCTS'], {"id": product_id}))
        self._invalidate_product(product)
        return True

    def _invalidate_product(self, product: Dict[str, Any]) -> None:
        self.cache.invalidate(("products", product.get("venue_id")))
        if product.get("category_id"):
            self.cache.invalidate(("products", "by-category", product["category_id"]))

    # Product images

    def upload_product_image(self, venue_name: str, product_name: str, filename: str,
                             data: bytes, content_type: Optional[str] = None) -> Dict[str, str]:
        path = build_image_path(venue_name, product_name, filename)
        stored_path = _remote(f"uploading image {path}",
                              lambda: self.backend.upload(self.images_bucket, path, data, content_type))
        return {"storage_path": stored_path, "image_url": self.product_image_url(stored_path)}

    def product_image_url(self, path: str) -> str:
        return self.backend.public_url(self.images_bucket, path)

    # Dashboards

    def get_admin_summary(self) -> Dict[str, int]:
        staff = self.get_staff_profiles()
        return {
            "venues": len(self.get_venues()),
            "managers": len([s for s in staff if s.get("role") == UserRole.MANAGER.value]),
            "bartenders": len([s for s in staff if s.get("role") == UserRole.BARTENDER.value]),
        }

    def get_manager_summary(self, venue_id: str) -> Dict[str, int]:
        products = self.get_products(venue_id)
        return {
            "categories": len(self.get_categories(venue_id)),
            "products": len(products),
            "available_products": len([p for p in products if p.get("is_available", True)]),
            "bartenders": len(self.get_venue_staff(venue_id)),
        }
