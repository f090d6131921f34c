# biz_agent/catalog.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional

from .config import GST_RATES, INITIAL_PRODUCTS
from .models import Product, TaxCategory

logger = logging.getLogger(__name__)


class TaxTable:
    """One GST rate per tax category; every category must be covered."""

    def __init__(self, rates: Dict[str, Decimal]):
        table: Dict[TaxCategory, Decimal] = {}
        for key, rate in rates.items():
            rate = Decimal(str(rate))
            if not (Decimal("0") <= rate < Decimal("1")):
                raise ValueError(f"tax rate for {key} must be in [0, 1), got {rate}")
            table[TaxCategory(key)] = rate

        missing = [c.value for c in TaxCategory if c not in table]
        if missing:
            raise ValueError(f"tax table missing categories: {', '.join(missing)}")
        self._rates = table

    @classmethod
    def default(cls) -> "TaxTable":
        return cls(GST_RATES)

    def rate_for(self, category: TaxCategory) -> Decimal:
        return self._rates[TaxCategory(category)]

    def as_dict(self) -> Dict[str, Decimal]:
        return {c.value: r for c, r in self._rates.items()}


class Catalog:
    """Ordered product reference data.

    Iteration order is insertion order and is what ProductMatcher uses to
    break ties. Products are immutable; ``upsert`` swaps in a new record.
    """

    def __init__(self, products: Iterable[Product] = ()):
        self._products: Dict[str, Product] = {}
        for p in products:
            self._products[p.id] = p

    @classmethod
    def default(cls) -> "Catalog":
        return cls(
            Product(id=pid, name=name, price=Decimal(price), unit=unit, category=cat)
            for pid, name, price, unit, cat in INITIAL_PRODUCTS
        )

    def __iter__(self) -> Iterator[Product]:
        return iter(list(self._products.values()))

    def __len__(self) -> int:
        return len(self._products)

    def get(self, product_id: str) -> Optional[Product]:
        return self._products.get(product_id)

    def products(self) -> List[Product]:
        return list(self._products.values())

    def upsert(self, product: Product) -> Product:
        self._products[product.id] = product
        return product


class ProductMatcher:
    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def match(self, name: Optional[str]) -> Optional[Product]:
        """First product, in catalog order, whose name contains the query or
        is contained in it (case-insensitive). No match returns None."""
        query = (name or "").strip().lower()
        if not query:
            return None

        for product in self.catalog:
            candidate = product.name.lower()
            if query in candidate or candidate in query:
                logger.debug("matched %r -> %s (%s)", name, product.name, product.id)
                return product

        logger.debug("no catalog match for %r", name)
        return None
