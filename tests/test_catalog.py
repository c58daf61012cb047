from decimal import Decimal

import pytest

from storefront import accounts, catalog, schemas
from storefront.errors import NotFoundError, ValidationError


def test_add_product_requires_name_and_price(db_session):
    with pytest.raises(ValidationError):
        catalog.add_product(db_session, schemas.ProductCreate(price=Decimal("1.00")))
    with pytest.raises(ValidationError):
        catalog.add_product(db_session, schemas.ProductCreate(name="Nameless price"))


def test_add_product_defaults(db_session):
    product = catalog.add_product(db_session, schemas.ProductCreate(name="Mug", price=Decimal("4.5")))
    assert product.stock == 0
    assert product.price == Decimal("4.50")
    assert product.average_rating == 0
    assert product.total_reviews == 0
    assert product.reviews == []


def test_update_product_is_partial(db_session, make_product):
    product = make_product(name="Chair", price="30.00", stock=4)
    updated = catalog.update_product(db_session, product.id, schemas.ProductUpdate(stock=9))
    assert updated.stock == 9
    assert updated.name == "Chair"
    assert updated.price == Decimal("30.00")

    with pytest.raises(NotFoundError):
        catalog.update_product(db_session, 999, schemas.ProductUpdate(stock=1))


def test_assign_admin(db_session, make_product):
    product = make_product()
    assigned = catalog.assign_admin(db_session, schemas.AssignRequest(product_id=product.id, admin_id=77))
    # Any id is accepted, whether or not it names an admin
    assert assigned.assigned_admin_id == 77

    with pytest.raises(ValidationError):
        catalog.assign_admin(db_session, schemas.AssignRequest(product_id=product.id))
    with pytest.raises(NotFoundError):
        catalog.assign_admin(db_session, schemas.AssignRequest(product_id=999, admin_id=1))


@pytest.mark.parametrize(
    "ratings, expected",
    [
        ([5], Decimal("5.00")),
        ([4, 5], Decimal("4.50")),
        ([1, 2, 2], Decimal("1.67")),
        ([5, 4, 4], Decimal("4.33")),
        ([3, 3, 3, 3, 4, 4], Decimal("3.33")),
    ],
)
def test_average_rating_tracks_all_reviews(db_session, make_user, make_product, ratings, expected):
    product = make_product()
    author = make_user(name="Critic")
    for rating in ratings:
        product = catalog.post_review(db_session, product.id, author.id, schemas.ReviewCreate(rating=rating))
    assert product.average_rating == expected
    assert product.total_reviews == len(ratings)
    assert len(product.reviews) == len(ratings)


@pytest.mark.parametrize("rating", [0, 6, -1, None])
def test_review_rating_out_of_range(db_session, make_user, make_product, rating):
    product = make_product()
    author = make_user()
    with pytest.raises(ValidationError):
        catalog.post_review(db_session, product.id, author.id, schemas.ReviewCreate(rating=rating))


def test_review_missing_product(db_session, make_user):
    author = make_user()
    with pytest.raises(NotFoundError):
        catalog.post_review(db_session, 404, author.id, schemas.ReviewCreate(rating=3))


def test_review_user_name_is_a_snapshot(db_session, make_user, make_product):
    product = make_product()
    author = make_user(name="Original")
    catalog.post_review(db_session, product.id, author.id, schemas.ReviewCreate(rating=4, comment="nice"))
    accounts.update_profile(db_session, author.id, schemas.ProfileUpdate(name="Renamed"))

    reloaded = catalog.get_product(db_session, product.id)
    assert reloaded.reviews[0].user_name == "Original"


def test_review_comment_markup_stripped(db_session, make_user, make_product):
    product = make_product()
    author = make_user()
    product = catalog.post_review(
        db_session, product.id, author.id, schemas.ReviewCreate(rating=5, comment="<b>Great</b> buy")
    )
    assert product.reviews[0].comment == "Great buy"


def test_same_user_may_review_repeatedly(db_session, make_user, make_product):
    product = make_product()
    author = make_user()
    catalog.post_review(db_session, product.id, author.id, schemas.ReviewCreate(rating=2))
    product = catalog.post_review(db_session, product.id, author.id, schemas.ReviewCreate(rating=4))
    assert product.total_reviews == 2
    assert product.average_rating == Decimal("3.00")


def test_list_all_reviews_tags_product(db_session, make_user, make_product):
    lamp = make_product(name="Lamp")
    desk = make_product(name="Desk")
    author = make_user()
    catalog.post_review(db_session, lamp.id, author.id, schemas.ReviewCreate(rating=5))
    catalog.post_review(db_session, desk.id, author.id, schemas.ReviewCreate(rating=3))
    catalog.post_review(db_session, desk.id, author.id, schemas.ReviewCreate(rating=4))

    reviews = catalog.list_all_reviews(db_session)
    assert [(r.product_name, r.rating) for r in reviews] == [("Lamp", 5), ("Desk", 3), ("Desk", 4)]
    assert all(r.product_id in (lamp.id, desk.id) for r in reviews)
    assert {(r.user.name, r.user.email) for r in reviews} == {(author.name, author.email)}


def test_get_product_missing(db_session):
    with pytest.raises(NotFoundError):
        catalog.get_product(db_session, 1)


def test_product_reviews_carry_author_summary(db_session, make_user, make_product):
    product = make_product()
    author = make_user(name="Ada")
    product = catalog.post_review(db_session, product.id, author.id, schemas.ReviewCreate(rating=5))

    review = schemas.ReviewRead.model_validate(product.reviews[0])
    assert review.user == schemas.UserSummary(id=author.id, name="Ada", email=author.email)
