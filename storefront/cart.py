"""Per-user shopping cart.

The cart is a list of line-items owned by the user. Lines reference products
live (no snapshot) and are joined with the product's display fields on read.
Adding the same product twice gives two lines; nothing is merged and stock is
not checked until the order is placed.
"""
import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from . import config, models
from .auth import Identity
from .errors import AuthError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def resolve_cart_user(identity: Optional[Identity], explicit_user_id: Optional[int]) -> int:
    """Pick whose cart a request acts on.

    Precedence is fixed: the authenticated identity wins; an explicit user id
    from the body or query is only honoured in trusted-cart mode, which is off
    unless ``TRUSTED_CART_IDENTITY`` (or ``config.set_trusted_cart_identity``)
    turns it on.
    """
    if identity is not None:
        return identity.id
    if not config.is_trusted_cart_identity():
        raise AuthError("No token, authorization denied")
    if explicit_user_id is None:
        raise ValidationError("userId is required (provide token or userId)")
    return explicit_user_id


def get_cart(db: Session, user_id: int) -> List[models.CartItem]:
    stmt = (
        select(models.User)
        .where(models.User.id == user_id)
        .options(selectinload(models.User.cart).selectinload(models.CartItem.product))
    )
    user = db.execute(stmt).scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")
    return list(user.cart)


def add_to_cart(db: Session, user_id: int, product_id: Optional[int], quantity: Optional[int]) -> List[models.CartItem]:
    if not product_id or not quantity:
        raise ValidationError("Product ID and quantity are required")

    if not db.get(models.Product, product_id):
        raise NotFoundError("Product not found")
    if not db.get(models.User, user_id):
        raise NotFoundError("User not found")

    db.add(models.CartItem(user_id=user_id, product_id=product_id, quantity=quantity))
    db.commit()
    logger.debug("user %s added product %s x%s to cart", user_id, product_id, quantity)
    return get_cart(db, user_id)


def remove_from_cart(db: Session, user_id: int, product_id: int) -> List[models.CartItem]:
    # Every line for the product goes; a product not in the cart is a no-op
    db.execute(
        delete(models.CartItem).where(
            models.CartItem.user_id == user_id, models.CartItem.product_id == product_id
        )
    )
    db.commit()
    return get_cart(db, user_id)


def clear_cart(db: Session, user_id: int) -> None:
    """Drop every line of the user's cart; the caller commits."""
    db.execute(delete(models.CartItem).where(models.CartItem.user_id == user_id))
