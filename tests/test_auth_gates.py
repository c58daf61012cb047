import pytest

from storefront import config
from storefront.auth import create_access_token

BASE = "/api/products"

ADMIN_ROUTES = [
    ("get", "/admin/users", None),
    ("get", "/admin/users/1", None),
    ("get", "/admin/users-stats", None),
    ("post", "/add", {"name": "X", "price": 1}),
    ("post", "/assign", {"productId": 1, "adminId": 1}),
    ("put", "/update/1", {"stock": 1}),
    ("get", "/admin/reviews", None),
    ("get", "/orders/payment", None),
    ("get", "/delivery-tracking", None),
    ("post", "/delivery-tracking", {"orderId": 1, "status": "in_transit"}),
]

USER_ROUTES = [
    ("post", "/orders/place", {"items": [{"productId": 1, "quantity": 1}], "deliveryAddress": "a", "paymentMethod": "upi"}),
    ("get", "/user/orders", None),
    ("delete", "/orders/1", None),
    ("put", "/profile/update", {"name": "x"}),
    ("post", "/1/reviews", {"rating": 5}),
]


def call(client, method, path, body, headers=None):
    kwargs = {"headers": headers or {}}
    if body is not None:
        kwargs["json"] = body
    return getattr(client, method)(f"{BASE}{path}", **kwargs)


@pytest.mark.parametrize("method, path, body", ADMIN_ROUTES)
def test_admin_routes_forbid_regular_users(client, make_user, auth_headers, method, path, body):
    user = make_user()
    r = call(client, method, path, body, auth_headers(user))
    assert r.status_code == 403
    assert r.json()["message"] == "Admin access required"


@pytest.mark.parametrize("method, path, body", ADMIN_ROUTES + USER_ROUTES)
def test_protected_routes_need_a_token(client, method, path, body):
    r = call(client, method, path, body)
    assert r.status_code == 401
    assert "message" in r.json()


def test_expired_token_rejected(client, make_user):
    user = make_user()
    token = create_access_token(user.id, user.role, expires_delta=-10)
    r = client.get(f"{BASE}/user/orders", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["message"] == "Token expired"


def test_tampered_token_rejected(client, make_user):
    user = make_user()
    token = create_access_token(user.id, "admin") + "x"
    r = client.get(f"{BASE}/admin/users", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_role_comes_from_token(client, make_user, auth_headers):
    admin = make_user(name="Root", role="admin")
    r = client.get(f"{BASE}/admin/users-stats", headers=auth_headers(admin))
    assert r.status_code == 200


def test_cart_without_token_rejected_by_default(client, make_user):
    user = make_user()
    r = client.get(f"{BASE}/cart", params={"userId": user.id})
    assert r.status_code == 401


def test_cart_invalid_token_rejected_even_in_trusted_mode(client, make_user):
    config.set_trusted_cart_identity(True)
    user = make_user()
    r = client.get(f"{BASE}/cart", params={"userId": user.id}, headers={"Authorization": "Bearer junk"})
    assert r.status_code == 401


def test_trusted_cart_mode_uses_explicit_user(client, make_user, make_product):
    config.set_trusted_cart_identity(True)
    user = make_user()
    product = make_product()

    r = client.post(f"{BASE}/cart/add", json={"productId": product.id, "quantity": 1, "userId": user.id})
    assert r.status_code == 200
    assert len(r.json()["cart"]) == 1

    r = client.get(f"{BASE}/cart", params={"userId": user.id})
    assert r.status_code == 200
    assert r.json()["cart"][0]["quantity"] == 1

    r = client.delete(f"{BASE}/cart/delete/{product.id}", params={"userId": user.id})
    assert r.status_code == 200
    assert r.json()["cart"] == []

    r = client.get(f"{BASE}/cart")
    assert r.status_code == 400
    assert r.json()["message"] == "userId is required (provide token or userId)"


def test_token_identity_beats_explicit_user(client, make_user, make_product, auth_headers):
    config.set_trusted_cart_identity(True)
    me = make_user(name="Me")
    other = make_user(name="Other")
    product = make_product()

    r = client.post(
        f"{BASE}/cart/add",
        json={"productId": product.id, "quantity": 1, "userId": other.id},
        headers=auth_headers(me),
    )
    assert r.status_code == 200
    assert client.get(f"{BASE}/cart", params={"userId": other.id}).json()["cart"] == []
    assert len(client.get(f"{BASE}/cart", headers=auth_headers(me)).json()["cart"]) == 1


def test_trusted_cart_mode_reads_user_from_body(client, make_user, make_product):
    config.set_trusted_cart_identity(True)
    user = make_user()
    product = make_product()
    client.post(f"{BASE}/cart/add", json={"productId": product.id, "quantity": 2, "userId": user.id})

    r = client.request("GET", f"{BASE}/cart", json={"userId": user.id})
    assert r.status_code == 200
    assert r.json()["cart"][0]["quantity"] == 2

    r = client.request("DELETE", f"{BASE}/cart/delete/{product.id}", json={"userId": user.id})
    assert r.status_code == 200
    assert r.json()["cart"] == []


def test_cart_body_user_beats_query_user(client, make_user, make_product):
    config.set_trusted_cart_identity(True)
    owner = make_user(name="Owner")
    other = make_user(name="Other")
    product = make_product()
    client.post(f"{BASE}/cart/add", json={"productId": product.id, "quantity": 1, "userId": owner.id})

    r = client.request("GET", f"{BASE}/cart", params={"userId": other.id}, json={"userId": owner.id})
    assert r.status_code == 200
    assert len(r.json()["cart"]) == 1


def test_cart_body_user_ignored_without_trusted_mode(client, make_user):
    user = make_user()
    r = client.request("GET", f"{BASE}/cart", json={"userId": user.id})
    assert r.status_code == 401
