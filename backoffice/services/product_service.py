from typing import Iterable, List, Optional, Dict
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import ConflictError, NotFoundError, ValidationError
from backoffice.database import transaction
from backoffice.models.product import Product


logger = logging.getLogger(__name__)


class ProductService:
    """Catalog lookups used by the purchasing and inventory flows."""

    def __init__(self, db: AsyncSession, business_id: str):
        self.db = db
        self.business_id = business_id

    async def create_product(
        self,
        sku: str,
        name: str,
        opening_stock: int = 0,
        actor_id: Optional[str] = None,
    ) -> Product:
        sku = (sku or "").strip()
        if not sku or not (name or "").strip():
            raise ValidationError("SKU and name are required")
        if isinstance(opening_stock, bool) or not isinstance(opening_stock, int) or opening_stock < 0:
            raise ValidationError("Opening stock must be a non-negative integer", {"opening_stock": opening_stock})

        async with transaction(self.db):
            if await self.get_by_sku(sku) is not None:
                raise ConflictError(f"Product with SKU {sku} already exists", {"sku": sku})

            product = Product(
                business_id=self.business_id,
                sku=sku,
                name=name.strip(),
                opening_stock=opening_stock,
                created_by=actor_id,
                updated_by=actor_id,
            )
            self.db.add(product)

        logger.info(f"Created product {sku} for business {self.business_id}")
        return product

    async def get_by_sku(self, sku: str, for_update: bool = False) -> Optional[Product]:
        stmt = select(Product).where(
            Product.business_id == self.business_id,
            Product.sku == sku,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def require_by_sku(self, sku: str, for_update: bool = False) -> Product:
        product = await self.get_by_sku(sku, for_update=for_update)
        if product is None:
            raise NotFoundError(f"Product with SKU {sku} not found", {"sku": sku})
        return product

    async def get_by_skus(self, skus: Iterable[str]) -> Dict[str, Product]:
        skus = list(set(skus))
        if not skus:
            return {}
        result = await self.db.execute(
            select(Product).where(
                Product.business_id == self.business_id,
                Product.sku.in_(skus),
            )
        )
        return {product.sku: product for product in result.scalars().all()}

    async def find_missing_skus(self, skus: Iterable[str]) -> List[str]:
        skus = list(skus)
        found = await self.get_by_skus(skus)
        return sorted({sku for sku in skus if sku not in found})

    async def ensure_skus_exist(self, skus: Iterable[str]) -> Dict[str, Product]:
        """Return products keyed by SKU, or raise listing every missing SKU."""
        skus = list(skus)
        found = await self.get_by_skus(skus)
        missing = sorted({sku for sku in skus if sku not in found})
        if missing:
            raise NotFoundError(
                f"Products not found: {', '.join(missing)}",
                {"missing_skus": missing}
            )
        return found
