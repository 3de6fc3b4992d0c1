"""Cache key builders, TTL presets and rate-limit endpoint names.

The cache itself is agnostic to key structure; these namespaces only keep
callers from colliding with each other.
"""

from __future__ import annotations

from enum import Enum


class CacheTTL:
    """TTL presets in milliseconds."""

    SHORT = 60 * 1000
    MEDIUM = 5 * 60 * 1000
    LONG = 30 * 60 * 1000
    VERY_LONG = 60 * 60 * 1000
    PERSISTENT = 24 * 60 * 60 * 1000


class CacheKeys:
    """Namespaced cache keys used across the storefront."""

    products = "products"
    coupons = "coupons"
    inventory = "inventory"
    low_stock = "lowStock"

    @staticmethod
    def product(product_id: str) -> str:
        return f"product:{product_id}"

    @staticmethod
    def reviews(product_id: str) -> str:
        return f"reviews:{product_id}"

    @staticmethod
    def user(user_id: str) -> str:
        return f"user:{user_id}"

    @staticmethod
    def orders(user_id: str) -> str:
        return f"orders:{user_id}"

    @staticmethod
    def cart(user_id: str) -> str:
        return f"cart:{user_id}"

    @staticmethod
    def wishlist(user_id: str) -> str:
        return f"wishlist:{user_id}"

    @staticmethod
    def tracking(tracking_number: str) -> str:
        return f"tracking:{tracking_number}"

    @staticmethod
    def shipping(province: str, weight: float) -> str:
        """Key for a shipping quote.

        Args:
            province: Destination province.
            weight: Weight bucket; integral floats render without a decimal part.
        """
        bucket = int(weight) if float(weight).is_integer() else weight
        return f"shipping:{province}:{bucket}"


class Endpoint(str, Enum):
    """Rate-limit endpoint names registered by default."""

    LOGIN = "login"
    REGISTER = "register"
    ADD_TO_CART = "addToCart"
    PLACE_ORDER = "placeOrder"
    ADD_REVIEW = "addReview"
    APPLY_COUPON = "applyCoupon"
    GENERAL = "general"
