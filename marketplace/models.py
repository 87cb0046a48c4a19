# marketplace/models.py
import enum

from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, DateTime, func,
    Numeric, CheckConstraint, UniqueConstraint, Index, Enum,
)
from sqlalchemy.orm import relationship

from .database import Base

# upper bound of the INTEGER columns used for ids and quantities
MAX_INT = 2**31 - 1


class Role(str, enum.Enum):
    SELLER = "seller"
    BUYER = "buyer"


class Category(str, enum.Enum):
    CLOTHES = "CLOTHES"
    SHOES = "SHOES"
    ELECTRONICS = "ELECTRONICS"
    OTHER = "OTHER"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# 👤 User: a seller owns products, a buyer owns at most one cart
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(Role, name="user_role", values_callable=_enum_values), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    products = relationship("Product", back_populates="seller", cascade="all, delete-orphan", passive_deletes=True)
    cart = relationship("Cart", back_populates="buyer", uselist=False, cascade="all, delete-orphan", passive_deletes=True)


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    seller_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    category = Column(Enum(Category, name="product_category", values_callable=_enum_values), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(5, 2), nullable=False, default=0)   # percent
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    seller = relationship("User", back_populates="products")
    cart_items = relationship("CartItem", back_populates="product", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_nonneg"),
        CheckConstraint("discount >= 0 AND discount <= 100", name="ck_products_discount_range"),
        Index("ix_products_category_name", "category", "name"),
        Index("ix_products_seller", "seller_id"),
    )


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, index=True)
    buyer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    buyer = relationship("User", back_populates="cart")
    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CartItem.id",
    )

    __table_args__ = (
        UniqueConstraint("buyer_id", name="uq_carts_buyer"),  # one cart per buyer
    )


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product", back_populates="cart_items")

    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),  # 🚫 no duplicate lines
        CheckConstraint("quantity > 0", name="ck_cart_items_quantity_pos"),
    )
