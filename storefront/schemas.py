from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

PaymentMethod = Literal["credit_card", "debit_card", "upi", "net_banking", "wallet"]
TrackingStatus = Literal["not_shipped", "in_transit", "out_for_delivery", "delivered"]


class Schema(BaseModel):
    """Wire models speak camelCase; Python code uses the field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# -------------------- Requests --------------------
# Required-ness of most fields is checked by the services so that a missing
# field yields the same ValidationError whether it comes over HTTP or not.

class SignupRequest(Schema):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None


class LoginRequest(Schema):
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdate(Schema):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None
    address: Optional[str] = None


class ProductCreate(Schema):
    name: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    description: Optional[str] = None
    category: Optional[str] = None
    stock: Optional[int] = Field(default=None, ge=0)


class ProductUpdate(ProductCreate):
    pass


class AssignRequest(Schema):
    product_id: Optional[int] = None
    admin_id: Optional[int] = None


class ReviewCreate(Schema):
    rating: Optional[int] = None
    comment: Optional[str] = None


class CartAddRequest(Schema):
    product_id: Optional[int] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    user_id: Optional[int] = None


class CartUserRequest(Schema):
    user_id: Optional[int] = None


class OrderItemIn(Schema):
    product_id: int
    quantity: int = Field(..., ge=1)


class OrderCreate(Schema):
    items: List[OrderItemIn] = Field(default_factory=list)
    delivery_address: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None


class TrackingUpdate(Schema):
    order_id: Optional[int] = None
    status: Optional[TrackingStatus] = None
    location: Optional[str] = None
    estimated_delivery: Optional[datetime] = None


# -------------------- Reads --------------------

class UserSummary(Schema):
    id: int
    name: str
    email: str


class UserPublic(UserSummary):
    role: str


class UserRead(UserPublic):
    phone: str = ""
    address: str = ""
    created_at: datetime
    updated_at: datetime


class ProductBrief(Schema):
    id: int
    name: str
    price: Decimal


class ProductCategoryRef(ProductBrief):
    category: Optional[str] = None


class CartProduct(ProductCategoryRef):
    stock: int
    description: Optional[str] = None


class CartLine(Schema):
    id: int
    product_id: int
    quantity: int
    added_at: datetime
    product: Optional[CartProduct] = None


class BriefCartLine(CartLine):
    product: Optional[ProductBrief] = None


class CategoryCartLine(CartLine):
    product: Optional[ProductCategoryRef] = None


class AdminUserRead(UserRead):
    cart: List[BriefCartLine] = []


class AdminUserDetail(UserRead):
    cart: List[CategoryCartLine] = []


class UserStats(Schema):
    total_users: int
    admin_count: int
    regular_users: int
    users_with_active_cart: int


class ReviewRead(Schema):
    id: int
    user_id: int
    user_name: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    user: Optional[UserSummary] = None


class FlatReview(ReviewRead):
    product_id: int
    product_name: str


class ProductRead(Schema):
    id: int
    name: str
    price: Decimal
    description: Optional[str] = None
    category: Optional[str] = None
    stock: int = 0
    average_rating: Decimal = Decimal("0")
    total_reviews: int = 0
    created_at: datetime


class ProductDetail(ProductRead):
    assigned_admin_id: Optional[int] = None
    reviews: List[ReviewRead] = []


class OrderItemRead(Schema):
    product_id: int
    product_name: str
    quantity: int
    price: Decimal
    subtotal: Decimal
    product: Optional[ProductCategoryRef] = None


class DeliveryTrackingRead(Schema):
    status: str
    location: str = ""
    estimated_delivery: Optional[datetime] = None
    updated_at: datetime


class OrderRead(Schema):
    id: int
    user_id: int
    user: Optional[UserSummary] = None
    items: List[OrderItemRead] = []
    total_amount: Decimal
    delivery_address: str
    payment_method: str
    payment_status: str
    order_status: str
    delivery_tracking: DeliveryTrackingRead
    created_at: datetime
    updated_at: datetime


class PaymentRead(Schema):
    order_id: int
    user_id: int
    user: Optional[UserSummary] = None
    total_amount: Decimal
    payment_method: str
    payment_status: str
    created_at: datetime


class TrackingRow(Schema):
    id: int
    user_id: int
    user: Optional[UserSummary] = None
    delivery_address: str
    delivery_tracking: DeliveryTrackingRead
    order_status: str


# -------------------- Envelopes --------------------

class Envelope(Schema):
    message: str


class SignupOut(Envelope):
    user: UserPublic


class LoginOut(Envelope):
    token: str
    role: str


class UserOut(Envelope):
    user: UserRead


class AdminUsersOut(Envelope):
    total_users: int
    users: List[AdminUserRead]


class AdminUserOut(Envelope):
    user: AdminUserDetail


class StatsOut(Envelope):
    stats: UserStats


class ProductOut(Envelope):
    product: ProductDetail


class ProductsOut(Envelope):
    count: int
    products: List[ProductRead]


class ReviewsOut(Envelope):
    total_reviews: int
    reviews: List[FlatReview]


class CartOut(Envelope):
    cart: List[CartLine]


class OrderOut(Envelope):
    order: OrderRead


class OrdersOut(Envelope):
    total_orders: int
    orders: List[OrderRead]


class PaymentsOut(Envelope):
    total_orders: int
    payments: List[PaymentRead]


class TrackingOut(Envelope):
    total_orders: int
    orders: List[TrackingRow]
