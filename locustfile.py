from locust import HttpUser, task, between
import random

BASE = "/api/products"


class ShopperUser(HttpUser):
    wait_time = between(0.1, 0.5)

    def on_start(self):
        # Sign up and log in a shopper for this simulated client
        uname = f"user_{random.randint(1, 1_000_000)}"
        email = f"{uname}@example.com"
        self.headers = None
        r = self.client.post(f"{BASE}/signup", json={"name": uname, "email": email, "password": "loadtest"})
        if r.status_code != 201:
            return
        r = self.client.post(f"{BASE}/login", json={"email": email, "password": "loadtest"})
        if r.status_code == 200:
            self.headers = {"Authorization": f"Bearer {r.json()['token']}"}

    def pick_product(self):
        r = self.client.get(f"{BASE}/")
        products = [p for p in r.json().get("products", []) if p["stock"] > 0] if r.status_code == 200 else []
        return random.choice(products) if products else None

    @task(5)
    def browse(self):
        product = self.pick_product()
        if product:
            self.client.get(f"{BASE}/{product['id']}", name=f"{BASE}/[id]")

    @task(2)
    def add_to_cart(self):
        product = self.pick_product()
        if not self.headers or not product:
            return
        self.client.post(f"{BASE}/cart/add", json={"productId": product["id"], "quantity": 1}, headers=self.headers)

    @task(1)
    def place_order(self):
        product = self.pick_product()
        if not self.headers or not product:
            return
        self.client.post(
            f"{BASE}/orders/place",
            json={
                "items": [{"productId": product["id"], "quantity": 1}],
                "deliveryAddress": "1 Load Test Way",
                "paymentMethod": random.choice(["credit_card", "upi", "wallet"]),
            },
            headers=self.headers,
        )
