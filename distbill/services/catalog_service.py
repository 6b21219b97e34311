"""Catalog search and bulk import for products and parties."""
import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import func, or_

from distbill.models.party import Party
from distbill.models.product import Product
from distbill.services.catalog_store import CatalogStore
from distbill.services.tax_engine import state_code_from_gstin


logger = logging.getLogger(__name__)


PRODUCT_SEARCH_LIMIT = 100
PARTY_SEARCH_LIMIT = 50
UNKNOWN_PARTY_NAME = "Unknown"


class SearchMode(str, Enum):
    """Product search strategy."""
    FAST = "FAST"          # Substring of name or batch
    ACCURATE = "ACCURATE"  # Name prefix, or exact HSN / barcode / category


class CatalogService:
    """Service for catalog lookups and imports."""

    def __init__(self, store: CatalogStore):
        self.store = store

    # ==================== PRODUCTS ====================

    async def search_products(
        self,
        term: Optional[str] = None,
        mode: SearchMode = SearchMode.FAST,
        limit: int = PRODUCT_SEARCH_LIMIT,
    ) -> List[Product]:
        """Search products; an empty term lists the catalog by name."""
        term = (term or "").strip().lower()
        if not term:
            return await self.store.products.query(order_by=Product.name, limit=limit)

        if SearchMode(mode) == SearchMode.FAST:
            condition = or_(
                Product.name.ilike(f"%{term}%"),
                Product.batch.ilike(f"%{term}%"),
            )
        else:
            condition = or_(
                Product.name.ilike(f"{term}%"),
                Product.hsn == term,
                func.lower(Product.barcode) == term,
                func.lower(Product.category) == term,
            )
        return await self.store.products.query(where=condition, order_by=Product.name, limit=limit)

    async def import_products(self, records: Iterable[Mapping[str, Any]]) -> List[Product]:
        """Insert already-normalized product rows in one transaction."""
        products = await self.store.products.bulk_add(dict(record) for record in records)
        logger.info(f"Imported {len(products)} products")
        return products

    # ==================== PARTIES ====================

    async def search_parties(self, term: Optional[str] = None, limit: int = PARTY_SEARCH_LIMIT) -> List[Party]:
        """Match name, phone or GSTIN; favourites first."""
        term = (term or "").strip()
        order = (Party.is_favorite.desc(), Party.name)
        if not term:
            return await self.store.parties.query(order_by=order, limit=limit)

        condition = or_(
            Party.name.ilike(f"%{term}%"),
            Party.phone.contains(term),
            Party.gstin.ilike(f"%{term}%"),
        )
        return await self.store.parties.query(where=condition, order_by=order, limit=limit)

    async def create_party(self, data: Mapping[str, Any]) -> Party:
        return await self.store.parties.add(self._with_state_code(data))

    async def import_parties(self, records: Iterable[Mapping[str, Any]]) -> List[Party]:
        """Insert already-normalized party rows; rows named 'Unknown' are skipped."""
        rows = [
            self._with_state_code(record)
            for record in records
            if (record.get("name") or "").strip() and record.get("name") != UNKNOWN_PARTY_NAME
        ]
        parties = await self.store.parties.bulk_add(rows)
        logger.info(f"Imported {len(parties)} parties")
        return parties

    @staticmethod
    def _with_state_code(data: Mapping[str, Any]) -> Dict[str, Any]:
        row = dict(data)
        if not row.get("state_code"):
            row["state_code"] = state_code_from_gstin(row.get("gstin"))
        return row
