from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, ForeignKey, Numeric, DateTime
from sqlalchemy.orm import relationship

from .config import DEFAULTS
from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    # passlib hash, never the plaintext
    password_hash = Column(String, nullable=False)
    # 'user' or 'admin'
    role = Column(String, nullable=False, default=DEFAULTS.role, index=True)
    phone = Column(String, nullable=False, default=DEFAULTS.phone)
    address = Column(String, nullable=False, default=DEFAULTS.address)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    cart = relationship(
        "CartItem", back_populates="user", cascade="all, delete-orphan", order_by="CartItem.id"
    )
    orders = relationship("Order", back_populates="user")


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # live reference, joined on read
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    added_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    user = relationship("User", back_populates="cart")
    product = relationship("Product")


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=True, index=True)
    stock = Column(Integer, nullable=False, default=DEFAULTS.stock)
    # recorded as given, not enforced against users
    assigned_admin_id = Column(Integer, nullable=True)
    # cached aggregates over reviews, refreshed on every review post
    average_rating = Column(Numeric(4, 2), nullable=False, default=0)
    total_reviews = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    reviews = relationship(
        "Review", back_populates="product", cascade="all, delete-orphan", order_by="Review.id"
    )


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # snapshot of the author's name at post time
    user_name = Column(String, nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    product = relationship("Product", back_populates="reviews")
    user = relationship("User")


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    total_amount = Column(Numeric(12, 2), nullable=False)
    delivery_address = Column(String, nullable=False)
    payment_method = Column(String, nullable=False)
    payment_status = Column(String, nullable=False, default=DEFAULTS.payment_status)
    order_status = Column(String, nullable=False, default=DEFAULTS.order_status, index=True)
    tracking_status = Column(String, nullable=False, default=DEFAULTS.tracking_status)
    tracking_location = Column(String, nullable=False, default=DEFAULTS.tracking_location)
    tracking_estimated_delivery = Column(DateTime(timezone=True), nullable=True)
    tracking_updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="orders")
    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )

    @property
    def delivery_tracking(self) -> dict:
        return {
            "status": self.tracking_status,
            "location": self.tracking_location,
            "estimated_delivery": self.tracking_estimated_delivery,
            "updated_at": self.tracking_updated_at,
        }


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    # snapshots taken at placement, never re-synced with the product
    product_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
