"""Seed demo data by calling the marketplace HTTP API.

Registers a demo seller and buyer (existing accounts are reused), lists a few
products as the seller and fills the buyer's cart, then prints the valued cart.

Usage:
    python scripts/seed_demo.py [BASE_URL]

BASE_URL defaults to http://localhost:8000.
"""
import sys

import httpx

DEFAULT_BASE_URL = "http://localhost:8000"
PASSWORD = "password123"

DEMO_PRODUCTS = [
    {"name": "Trail Runner", "category": "shoes", "description": "Lightweight running shoe", "price": 89.99, "discount": 15},
    {"name": "Denim Jacket", "category": "clothes", "description": "Classic fit", "price": 120.00, "discount": 0},
    {"name": "USB-C Charger", "category": "electronics", "description": "65W GaN charger", "price": 39.50, "discount": 10},
]


def ensure_user(client: httpx.Client, name: str, email: str, role: str) -> str:
    r = client.post("/api/users", json={"name": name, "email": email, "password": PASSWORD, "role": role})
    if r.status_code == 201:
        print(f"Registered {role}: {email}")
    else:
        print(f"Register {email} returned {r.status_code}: {r.text}")

    r = client.post("/api/users/login", json={"email": email, "password": PASSWORD})
    r.raise_for_status()
    return r.json()["token"]


def main():
    base_url = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_BASE_URL
    with httpx.Client(base_url=base_url, timeout=5.0) as client:
        seller_token = ensure_user(client, "Demo Seller", "demo+seller@example.com", "seller")
        buyer_token = ensure_user(client, "Demo Buyer", "demo+buyer@example.com", "buyer")

        product_ids = []
        for product in DEMO_PRODUCTS:
            r = client.post("/api/products", json=product, headers={"Authorization": f"Bearer {seller_token}"})
            r.raise_for_status()
            product_ids.append(r.json()["product"]["id"])
            print(f"Listed product {product['name']} -> id {product_ids[-1]}")

        buyer_headers = {"Authorization": f"Bearer {buyer_token}"}
        for quantity, product_id in enumerate(product_ids, start=1):
            r = client.post("/api/cart/add", json={"product_id": product_id, "quantity": quantity}, headers=buyer_headers)
            r.raise_for_status()

        r = client.get("/api/cart", headers=buyer_headers)
        r.raise_for_status()
        cart = r.json()
        for line in cart["items"]:
            print(f"  {line['quantity']} x {line['name']} @ {line['unit_price_after_discount']} = {line['line_total']}")
        print(f"Cart total: {cart['total']}")


if __name__ == "__main__":
    main()
