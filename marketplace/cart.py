# marketplace/cart.py
"""Cart engine and the buyer cart routes.

A buyer owns at most one cart, created by the first add. Lines are unique per
(cart, product): adding a product again increments the existing line. Both
steps are single conditional statements (``INSERT ... ON CONFLICT``) backed by
the unique constraints on ``carts.buyer_id`` and
``cart_items(cart_id, product_id)``, so concurrent adds from the same buyer
never create a second cart or lose an increment.

Valuation rounds half-up to cents at every step, per line and then once more
for the cart total:

    discount_amount = round2(price * discount / 100)
    unit_price      = round2(price - discount_amount)
    line_total      = round2(unit_price * quantity)
    total           = round2(sum(line_total))
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy import BigInteger, cast, delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .database import get_session
from .errors import Internal, InvalidInput, NotFound
from .models import MAX_INT, Cart, CartItem, Product, User
from .schemas import CartAddRequest, CartAddResponse, CartLineView, CartView, RemovedResponse
from .security import Principal, require_buyer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cart", tags=["cart"])

CENT = Decimal("0.01")


# 💰 Valuation

def round2(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class LineValuation:
    discount_amount: Decimal
    unit_price_after_discount: Decimal
    line_total: Decimal


def value_line(price, discount, quantity: int) -> LineValuation:
    price = _to_decimal(price)
    discount = _to_decimal(discount)
    discount_amount = round2(price * discount / 100)
    unit_price = round2(price - discount_amount)
    return LineValuation(
        discount_amount=discount_amount,
        unit_price_after_discount=unit_price,
        line_total=round2(unit_price * quantity),
    )


def cart_total(line_totals: Iterable[Decimal]) -> Decimal:
    return round2(sum(line_totals, Decimal("0")))


# 🛒 Engine

def _is_int_in_range(value, minimum: int) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return minimum <= value <= MAX_INT


def _upsert_insert(session: AsyncSession):
    dialect = session.bind.dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise Internal(f"Cart upserts are not supported on {dialect}")


async def find_cart(session: AsyncSession, buyer_id: int, with_items: bool = False) -> Optional[Cart]:
    query = select(Cart).where(Cart.buyer_id == buyer_id)
    if with_items:
        query = query.options(selectinload(Cart.items).selectinload(CartItem.product))
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def get_cart(session: AsyncSession, buyer_id: int) -> CartView:
    cart = await find_cart(session, buyer_id, with_items=True)
    if cart is None:
        raise NotFound("Cart")

    lines = []
    line_totals = []
    for item in cart.items:
        product = item.product
        valuation = value_line(product.price, product.discount, item.quantity)
        line_totals.append(valuation.line_total)
        lines.append(CartLineView(
            product_id=item.product_id,
            name=product.name,
            category=product.category,
            price=float(product.price),
            discount=float(product.discount),
            quantity=item.quantity,
            discount_amount=float(valuation.discount_amount),
            unit_price_after_discount=float(valuation.unit_price_after_discount),
            line_total=float(valuation.line_total),
        ))

    total = cart_total(line_totals)
    return CartView(buyer_id=buyer_id, items=lines, count=len(lines), total=float(total))


async def add_to_cart(
    session: AsyncSession,
    buyer_id: int,
    product_id: Optional[int],
    quantity: Optional[int] = 1,
) -> Tuple[CartItem, bool]:
    """Add ``quantity`` of a product, merging into an existing line.

    Returns the resulting line and whether it was newly created.
    """
    if quantity is None:
        quantity = 1
    if not _is_int_in_range(product_id, 0):
        raise InvalidInput("Invalid product ID or quantity", field="product_id")
    if not _is_int_in_range(quantity, 1):
        raise InvalidInput("Invalid product ID or quantity", field="quantity")

    if await session.get(User, buyer_id) is None:
        raise NotFound("User", buyer_id)
    if await session.get(Product, product_id) is None:
        raise NotFound("Product", product_id)

    insert = _upsert_insert(session)
    try:
        await session.execute(
            insert(Cart).values(buyer_id=buyer_id).on_conflict_do_nothing(index_elements=[Cart.buyer_id])
        )
        cart_id = (await session.execute(select(Cart.id).where(Cart.buyer_id == buyer_id))).scalar_one()

        stmt = insert(CartItem).values(cart_id=cart_id, product_id=product_id, quantity=quantity)
        stmt = stmt.on_conflict_do_update(
            index_elements=[CartItem.cart_id, CartItem.product_id],
            set_={"quantity": CartItem.quantity + stmt.excluded.quantity},
            # a merge that would overflow the column updates nothing
            where=cast(CartItem.quantity, BigInteger) + stmt.excluded.quantity <= MAX_INT,
        )
        result = await session.scalars(
            stmt.returning(CartItem),
            execution_options={"populate_existing": True},
        )
        item = result.one_or_none()
        if item is None:
            await session.rollback()
            raise InvalidInput(f"Cart quantity cannot exceed {MAX_INT}", field="quantity")
        await session.commit()
    except IntegrityError:
        # buyer or product row vanished between the lookup and the write
        await session.rollback()
        logger.warning("Add to cart failed for buyer %s, product %s", buyer_id, product_id)
        raise NotFound("Buyer or product")

    # an increment always ends above the requested amount
    created = item.quantity == quantity
    logger.info(
        "Buyer %s %s product %s (quantity now %s)",
        buyer_id, "added" if created else "merged", product_id, item.quantity,
    )
    return item, created


async def remove_from_cart(session: AsyncSession, buyer_id: int, product_id: int) -> int:
    buyer_cart = select(Cart.id).where(Cart.buyer_id == buyer_id).scalar_subquery()
    result = await session.execute(
        delete(CartItem)
        .where(CartItem.product_id == product_id, CartItem.cart_id == buyer_cart)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    if result.rowcount:
        logger.info("Buyer %s removed product %s from cart", buyer_id, product_id)
    return result.rowcount


async def clear_cart(session: AsyncSession, buyer_id: int) -> int:
    cart = await find_cart(session, buyer_id)
    if cart is None:
        raise NotFound("Cart")
    result = await session.execute(
        delete(CartItem)
        .where(CartItem.cart_id == cart.id)
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    logger.info("Buyer %s cleared cart (%s lines)", buyer_id, result.rowcount)
    return result.rowcount


# ✅ Routes

@router.get("", response_model=CartView)
async def read_cart(
    session: AsyncSession = Depends(get_session),
    buyer: Principal = Depends(require_buyer),
):
    return await get_cart(session, buyer.id)


@router.post("/add", response_model=CartAddResponse, status_code=status.HTTP_201_CREATED)
async def add_item(
    payload: CartAddRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
    buyer: Principal = Depends(require_buyer),
):
    item, created = await add_to_cart(session, buyer.id, payload.product_id, payload.quantity)
    if created:
        message = "Product added to cart successfully"
    else:
        response.status_code = status.HTTP_200_OK
        message = "Product quantity updated in cart successfully"
    return {"message": message, "cart_item": item}


# declared before /{product_id} so "clear" is never read as a product id
@router.delete("/clear", response_model=RemovedResponse)
async def clear_items(
    session: AsyncSession = Depends(get_session),
    buyer: Principal = Depends(require_buyer),
):
    count = await clear_cart(session, buyer.id)
    return {"message": "Cart cleared successfully", "count": count}


@router.delete("/{product_id}", response_model=RemovedResponse)
async def remove_item(
    product_id: int = Path(le=MAX_INT),
    session: AsyncSession = Depends(get_session),
    buyer: Principal = Depends(require_buyer),
):
    count = await remove_from_cart(session, buyer.id, product_id)
    if count == 0:
        raise NotFound("Cart item")
    return {"message": "Product removed from cart successfully", "count": count}
