"""Order placement, listing, cancellation and delivery tracking.

Placement and cancellation touch several rows (product stock, the order and its
items, the user's cart). Each runs inside a single session transaction that is
committed once at the end, so a failure part-way leaves no stock changed. Stock
is taken with a conditional ``UPDATE ... WHERE stock >= quantity`` so two
concurrent orders cannot both pass the check and overdraw a product.
"""
import logging
from decimal import Decimal
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from . import cart, models, schemas
from .auth import Identity
from .config import DEFAULTS
from .errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from .utils import round_amount

logger = logging.getLogger(__name__)


def _order_query():
    return select(models.Order).options(
        selectinload(models.Order.user),
        selectinload(models.Order.items).selectinload(models.OrderItem.product),
    )


def get_order(db: Session, order_id: int) -> models.Order:
    order = db.execute(_order_query().where(models.Order.id == order_id)).scalar_one_or_none()
    if not order:
        raise NotFoundError("Order not found")
    return order


def take_stock(db: Session, product_id: int, quantity: int) -> bool:
    """Decrement stock by ``quantity`` if at least that much is left."""
    result = db.execute(
        update(models.Product)
        .where(models.Product.id == product_id, models.Product.stock >= quantity)
        .values(stock=models.Product.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def return_stock(db: Session, product_id: int, quantity: int) -> None:
    db.execute(
        update(models.Product)
        .where(models.Product.id == product_id)
        .values(stock=models.Product.stock + quantity)
        .execution_options(synchronize_session=False)
    )


def place_order(db: Session, user_id: int, data: schemas.OrderCreate) -> models.Order:
    if not data.items:
        raise ValidationError("Items are required")
    if not data.delivery_address or not data.payment_method:
        raise ValidationError("Delivery address and payment method are required")
    if not db.get(models.User, user_id):
        raise NotFoundError("User not found")

    total = Decimal("0")
    lines = []
    try:
        # Items are handled in input order; the first failure aborts the lot
        for item in data.items:
            product = db.get(models.Product, item.product_id)
            if not product:
                raise NotFoundError(f"Product {item.product_id} not found")
            if not take_stock(db, product.id, item.quantity):
                raise ConflictError(f"Insufficient stock for {product.name}")

            subtotal = round_amount(product.price * item.quantity)
            total += subtotal
            lines.append(
                models.OrderItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=item.quantity,
                    price=product.price,
                    subtotal=subtotal,
                )
            )

        order = models.Order(
            user_id=user_id,
            items=lines,
            total_amount=round_amount(total),
            delivery_address=data.delivery_address,
            payment_method=data.payment_method,
            payment_status=DEFAULTS.payment_status,
            order_status=DEFAULTS.order_status,
        )
        db.add(order)
        # The whole cart goes, not only the ordered products
        cart.clear_cart(db, user_id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("order %s placed by user %s for %s", order.id, user_id, order.total_amount)
    return get_order(db, order.id)


def list_user_orders(db: Session, user_id: int) -> List[models.Order]:
    stmt = (
        _order_query()
        .where(models.Order.user_id == user_id)
        .order_by(models.Order.created_at.desc(), models.Order.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def cancel_order(db: Session, order_id: int, requester: Identity) -> schemas.OrderRead:
    order = get_order(db, order_id)
    if order.user_id != requester.id and not requester.is_admin:
        raise ForbiddenError("Unauthorized to delete this order")
    if order.order_status == "delivered":
        raise ConflictError("Cannot cancel a delivered order")

    # Captured before the row goes away
    cancelled = schemas.OrderRead.model_validate(order)
    try:
        for item in order.items:
            return_stock(db, item.product_id, item.quantity)
        db.delete(order)
        db.commit()
    except Exception:
        db.rollback()
        raise

    # Payment status is left as it was
    logger.info("order %s cancelled by user %s", order_id, requester.id)
    return cancelled


def update_delivery_tracking(db: Session, data: schemas.TrackingUpdate) -> models.Order:
    if not data.order_id or not data.status:
        raise ValidationError("Order ID and status are required")

    order = db.get(models.Order, data.order_id)
    if not order:
        raise NotFoundError("Order not found")

    order.tracking_status = data.status
    if data.location is not None:
        order.tracking_location = data.location
    if data.estimated_delivery is not None:
        order.tracking_estimated_delivery = data.estimated_delivery
    order.tracking_updated_at = models.utcnow()
    # Coarse mapping: anything short of delivered counts as shipped
    order.order_status = "delivered" if data.status == "delivered" else "shipped"
    db.add(order)
    db.commit()
    logger.info("order %s tracking set to %s", order.id, data.status)
    return get_order(db, data.order_id)


def list_orders(db: Session) -> List[models.Order]:
    return list(db.execute(_order_query().order_by(models.Order.id)).scalars().all())


def list_payments(db: Session) -> List[schemas.PaymentRead]:
    return [
        schemas.PaymentRead(
            order_id=order.id,
            user_id=order.user_id,
            user=schemas.UserSummary.model_validate(order.user) if order.user else None,
            total_amount=order.total_amount,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            created_at=order.created_at,
        )
        for order in list_orders(db)
    ]


def list_delivery_tracking(db: Session) -> List[models.Order]:
    return list_orders(db)
