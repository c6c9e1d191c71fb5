"""Local persisted state for the storefront client.

Mirrors the browser's localStorage: a flat JSON object on disk holding the
cart under ``"cart"`` and the shipping form under ``"shippingInfo"``.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from storefront.cart.models import Cart, CartItem, ShippingInfo

logger = logging.getLogger(__name__)

CART_KEY = "cart"
SHIPPING_KEY = "shippingInfo"


class LocalStore:
    """Key/value store backed by a JSON file, or memory when ``path`` is None."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else None
        self._data: dict[str, Any] = {}
        if self.path:
            self._load()

    def _load(self) -> None:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable local store %s: %s", self.path, e)
            return
        if isinstance(raw, dict):
            self._data = raw

    def _flush(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data), encoding="utf-8")

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    # ── Well-known keys ──

    def load_cart(self) -> Cart:
        items = self.get(CART_KEY) or []
        return Cart(items=[CartItem.from_dict(i) for i in items if isinstance(i, dict)])

    def save_cart(self, cart: Cart) -> None:
        self.set(CART_KEY, [item.to_dict() for item in cart.items])

    def clear_cart(self) -> None:
        self.set(CART_KEY, [])

    def load_shipping(self) -> Optional[ShippingInfo]:
        data = self.get(SHIPPING_KEY)
        if not isinstance(data, dict):
            return None
        return ShippingInfo.from_dict(data)

    def save_shipping(self, info: ShippingInfo) -> None:
        self.set(SHIPPING_KEY, info.to_dict())
