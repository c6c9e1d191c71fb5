"""Client-side cart and shipping records."""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional


@dataclass
class CartItem:
    """One product line in the cart. ``price`` is in major currency units."""

    id: str
    name: str
    price: float
    quantity: int = 1
    category: Optional[str] = None
    slug: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartItem":
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or data.get("title") or "Product",
            price=data.get("price", 0),
            quantity=int(data.get("quantity", 1)),
            category=data.get("category"),
            slug=data.get("slug"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ShippingInfo:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    address: str = ""
    city: str = ""
    zip_code: str = ""
    country: str = "United States"

    # Persisted with the browser's field names.
    _KEYS = {
        "first_name": "firstName",
        "last_name": "lastName",
        "email": "email",
        "address": "address",
        "city": "city",
        "zip_code": "zipCode",
        "country": "country",
    }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShippingInfo":
        return cls(**{
            attr: data.get(key) or getattr(cls, attr)
            for attr, key in cls._KEYS.items()
        })

    def to_dict(self) -> dict[str, str]:
        return {key: getattr(self, attr) for attr, key in self._KEYS.items()}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class Cart:
    items: list[CartItem] = field(default_factory=list)

    def add(self, item: CartItem) -> None:
        for existing in self.items:
            if existing.id == item.id:
                existing.quantity += item.quantity
                return
        self.items.append(item)

    def remove(self, item_id: str) -> None:
        self.items = [i for i in self.items if i.id != item_id]

    def update_quantity(self, item_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove(item_id)
            return
        for item in self.items:
            if item.id == item_id:
                item.quantity = quantity

    def clear(self) -> None:
        self.items = []

    def __len__(self) -> int:
        return len(self.items)
