# marketplace/catalog.py
"""Catalog store: product lookups and writes.

Ownership is not enforced here; the product routes compare
``product.seller_id`` with the caller before calling the write helpers.
"""
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Category, Product
from .schemas import ProductCreate, ProductUpdate


def _decimal(value) -> Decimal:
    return Decimal(str(value))


async def find_by_id(session: AsyncSession, product_id: int) -> Optional[Product]:
    return await session.get(Product, product_id)


async def find_many(
    session: AsyncSession,
    name_contains: Optional[str] = None,
    category_equals: Optional[str] = None,
) -> List[Product]:
    """Case-insensitive name substring and category equality, AND-combined."""
    query = select(Product)
    if name_contains:
        query = query.where(Product.name.icontains(name_contains, autoescape=True))
    if category_equals:
        try:
            category = Category(category_equals.strip().upper())
        except ValueError:
            # no product can carry an unknown category
            return []
        query = query.where(Product.category == category)
    result = await session.execute(query.order_by(Product.id))
    return list(result.scalars().all())


async def create(session: AsyncSession, seller_id: int, payload: ProductCreate) -> Product:
    product = Product(
        seller_id=seller_id,
        name=payload.name,
        category=payload.category,
        description=payload.description,
        price=_decimal(payload.price),
        discount=_decimal(payload.discount),
    )
    session.add(product)
    await session.commit()
    await session.refresh(product)
    return product


async def update(session: AsyncSession, product: Product, payload: ProductUpdate) -> Product:
    # fields left out of the request (or sent as null) keep their stored values
    for field, value in payload.model_dump(exclude_none=True).items():
        if field in ("price", "discount"):
            value = _decimal(value)
        setattr(product, field, value)
    await session.commit()
    await session.refresh(product)
    return product


async def delete(session: AsyncSession, product: Product) -> None:
    await session.delete(product)
    await session.commit()
