# marketplace/schemas.py
from decimal import Decimal
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List

from .models import MAX_INT, Category, Role


def _normalize_category(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value


# 👤 Users
class UserBase(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    role: Role


class UserCreate(UserBase):
    password: str = Field(min_length=1)


class UserOut(UserBase):
    id: int
    class Config:
        from_attributes = True


class UserMessage(BaseModel):
    message: str
    user: UserOut


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    message: str
    token: str
    token_type: str = "bearer"
    user: UserOut


# 🛍️ Products
class ProductBase(BaseModel):
    name: str = Field(min_length=1)
    category: Category
    description: str = ""

    normalize_category = field_validator("category", mode="before")(_normalize_category)


# prices are stored as NUMERIC(10, 2) and discounts as NUMERIC(5, 2); more
# decimals are rejected rather than rounded away
class ProductCreate(ProductBase):
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    discount: Decimal = Field(default=Decimal("0"), ge=0, le=100, max_digits=5, decimal_places=2)


class ProductUpdate(BaseModel):
    # omitted fields keep their stored values
    name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[Category] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    discount: Optional[Decimal] = Field(default=None, ge=0, le=100, max_digits=5, decimal_places=2)

    normalize_category = field_validator("category", mode="before")(_normalize_category)


class ProductOut(ProductBase):
    id: int
    seller_id: int
    price: float
    discount: float
    class Config:
        from_attributes = True


class ProductMessage(BaseModel):
    message: str
    product: ProductOut


# 🛒 Cart
class CartAddRequest(BaseModel):
    product_id: Optional[int] = Field(default=None, le=MAX_INT)
    quantity: Optional[int] = Field(default=1, le=MAX_INT)


class CartLineOut(BaseModel):
    id: int
    cart_id: int
    product_id: int
    quantity: int
    class Config:
        from_attributes = True


class CartAddResponse(BaseModel):
    message: str
    cart_item: CartLineOut


class CartLineView(BaseModel):
    product_id: int
    name: str
    category: Category
    price: float
    discount: float
    quantity: int
    discount_amount: float
    unit_price_after_discount: float
    line_total: float


# 📊 Valued cart (single response shape for GET /api/cart)
class CartView(BaseModel):
    buyer_id: int
    items: List[CartLineView]
    count: int
    total: float


class RemovedResponse(BaseModel):
    message: str
    count: int
