# marketplace/products.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from . import catalog
from .database import get_session
from .errors import Forbidden, NotFound
from .models import MAX_INT, Product
from .schemas import ProductCreate, ProductMessage, ProductOut, ProductUpdate
from .security import Principal, require_seller

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])
search_router = APIRouter(prefix="/api", tags=["search"])


async def _get_owned_product(session: AsyncSession, product_id: int, seller: Principal) -> Product:
    product = await catalog.find_by_id(session, product_id)
    if product is None:
        raise NotFound("Product", product_id)
    if product.seller_id != seller.id:
        logger.warning("Seller %s tried to modify product %s owned by %s", seller.id, product_id, product.seller_id)
        raise Forbidden("You are not authorized to modify this product")
    return product


@router.get("", response_model=List[ProductOut])
async def list_products(session: AsyncSession = Depends(get_session)):
    return await catalog.find_many(session)


@router.get("/{product_id}", response_model=ProductOut)
async def get_product(product_id: int = Path(le=MAX_INT), session: AsyncSession = Depends(get_session)):
    product = await catalog.find_by_id(session, product_id)
    if product is None:
        raise NotFound("Product", product_id)
    return product


@router.post("", response_model=ProductMessage, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    session: AsyncSession = Depends(get_session),
    seller: Principal = Depends(require_seller),
):
    product = await catalog.create(session, seller.id, payload)
    logger.info("Seller %s created product %s", seller.id, product.id)
    return {"message": "Product added successfully", "product": product}


@router.put("/{product_id}", response_model=ProductMessage)
async def update_product(
    payload: ProductUpdate,
    product_id: int = Path(le=MAX_INT),
    session: AsyncSession = Depends(get_session),
    seller: Principal = Depends(require_seller),
):
    product = await _get_owned_product(session, product_id, seller)
    product = await catalog.update(session, product, payload)
    return {"message": "Product updated successfully", "product": product}


@router.delete("/{product_id}", response_model=ProductMessage)
async def delete_product(
    product_id: int = Path(le=MAX_INT),
    session: AsyncSession = Depends(get_session),
    seller: Principal = Depends(require_seller),
):
    product = await _get_owned_product(session, product_id, seller)
    await catalog.delete(session, product)
    logger.info("Seller %s deleted product %s", seller.id, product_id)
    return {"message": "Product deleted successfully", "product": product}


# 🔎 Search
@search_router.get("/search", response_model=List[ProductOut])
async def search_products(
    name: Optional[str] = None,
    category: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    return await catalog.find_many(session, name_contains=name, category_equals=category)
