import logging
from decimal import Decimal
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from . import models, schemas
from .config import DEFAULTS
from .errors import NotFoundError, ValidationError
from .utils import clean_text, round_amount

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def list_products(db: Session) -> List[models.Product]:
    return list(db.execute(select(models.Product).order_by(models.Product.id)).scalars().all())


def get_product(db: Session, product_id: int) -> models.Product:
    stmt = (
        select(models.Product)
        .where(models.Product.id == product_id)
        .options(selectinload(models.Product.reviews).selectinload(models.Review.user))
    )
    product = db.execute(stmt).scalar_one_or_none()
    if not product:
        raise NotFoundError("Product not found")
    return product


def add_product(db: Session, data: schemas.ProductCreate) -> models.Product:
    if not data.name or data.price is None:
        raise ValidationError("Name and price are required")

    product = models.Product(
        name=data.name,
        price=round_amount(data.price),
        description=data.description,
        category=data.category,
        stock=data.stock if data.stock is not None else DEFAULTS.stock,
    )
    db.add(product)
    db.commit()
    logger.info("product %s added", product.id)
    return get_product(db, product.id)


def update_product(db: Session, product_id: int, data: schemas.ProductUpdate) -> models.Product:
    product = db.get(models.Product, product_id)
    if not product:
        raise NotFoundError("Product not found")

    for key, value in data.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        if key == "price":
            value = round_amount(value)
        setattr(product, key, value)
    db.add(product)
    db.commit()
    logger.info("product %s updated", product_id)
    return get_product(db, product_id)


def assign_admin(db: Session, data: schemas.AssignRequest) -> models.Product:
    if not data.product_id or not data.admin_id:
        raise ValidationError("Product ID and Admin ID are required")

    product = db.get(models.Product, data.product_id)
    if not product:
        raise NotFoundError("Product not found")

    # The admin id is recorded as given; it is not checked against users
    product.assigned_admin_id = data.admin_id
    db.add(product)
    db.commit()
    logger.info("product %s assigned to admin %s", product.id, data.admin_id)
    return get_product(db, data.product_id)


def average_rating(ratings: List[int]) -> Decimal:
    if not ratings:
        return round_amount(Decimal(0))
    return round_amount(Decimal(sum(ratings)) / Decimal(len(ratings)))


def post_review(db: Session, product_id: int, user_id: int, data: schemas.ReviewCreate) -> models.Product:
    rating = data.rating
    if rating is None or rating < MIN_RATING or rating > MAX_RATING:
        raise ValidationError("Rating must be between 1 and 5")

    product = get_product(db, product_id)
    user = db.get(models.User, user_id)
    if not user:
        raise NotFoundError("User not found")

    product.reviews.append(
        models.Review(
            user_id=user.id,
            user_name=user.name,
            rating=rating,
            comment=clean_text(data.comment),
        )
    )
    ratings = [review.rating for review in product.reviews]
    product.average_rating = average_rating(ratings)
    product.total_reviews = len(ratings)
    db.add(product)
    db.commit()
    logger.info("review posted on product %s by user %s", product_id, user_id)
    return get_product(db, product_id)


def list_all_reviews(db: Session) -> List[schemas.FlatReview]:
    stmt = (
        select(models.Product)
        .options(selectinload(models.Product.reviews).selectinload(models.Review.user))
        .order_by(models.Product.id)
    )
    flattened = []
    for product in db.execute(stmt).scalars().all():
        for review in product.reviews:
            flattened.append(
                schemas.FlatReview(
                    product_id=product.id,
                    product_name=product.name,
                    id=review.id,
                    user_id=review.user_id,
                    user_name=review.user_name,
                    rating=review.rating,
                    comment=review.comment,
                    created_at=review.created_at,
                    user=schemas.UserSummary.model_validate(review.user) if review.user else None,
                )
            )
    return flattened
