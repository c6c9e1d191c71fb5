"""HTTP client for the product catalog held in Supabase (PostgREST)."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class ProductSummary:
    """A product row as the search dropdown and listings need it."""

    id: str
    name: str
    category: str = ""
    slug: str = ""
    country: str = ""
    price: Optional[float] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ProductSummary":
        return cls(
            id=str(row.get("id", "")),
            name=row.get("name", ""),
            category=row.get("category", "") or "",
            slug=row.get("slug", "") or "",
            country=row.get("country", "") or "",
            price=row.get("price"),
        )

    @property
    def detail_path(self) -> str:
        return f"/products/{self.category}/{self.slug}"


def _escape_like(term: str) -> str:
    # PostgREST filter values are comma/paren delimited; '*' is the wildcard.
    return "".join(c for c in term if c not in ",()*%")


class ProductCatalog:
    """Queries the ``products`` table through Supabase's REST endpoint."""

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        table: str = "products",
        timeout: float = 10.0,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.table = table
        self._http = http or httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.anon_key}",
            "Accept": "application/json",
        }

    async def _select(self, params: dict[str, str]) -> list[ProductSummary]:
        resp = await self._http.get(
            f"{self.base_url}/rest/v1/{self.table}",
            params={"select": "*", **params},
            headers=self._headers(),
        )
        resp.raise_for_status()
        return [ProductSummary.from_row(row) for row in resp.json()]

    async def search(self, term: str, limit: Optional[int] = None) -> list[ProductSummary]:
        """Case-insensitive substring match on product name."""
        params = {"name": f"ilike.*{_escape_like(term.strip())}*"}
        if limit:
            params["limit"] = str(limit)
        return await self._select(params)

    async def by_category(self, category: str) -> list[ProductSummary]:
        return await self._select({"category": f"eq.{category}"})

    async def get(self, category: str, slug: str) -> Optional[ProductSummary]:
        rows = await self._select({
            "category": f"eq.{category}",
            "slug": f"eq.{slug}",
            "limit": "1",
        })
        return rows[0] if rows else None

    async def close(self) -> None:
        await self._http.aclose()
