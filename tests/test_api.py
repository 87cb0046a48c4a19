"""
API tests for the marketplace routes.

Requests go through the full FastAPI stack (access guard, handlers,
engine, SQLite storage) via TestClient.
"""
from conftest import PASSWORD, auth, register_and_login

SNEAKER = {
    "name": "Runner 3000",
    "category": "Shoes",
    "description": "Road running shoe",
    "price": 100.0,
    "discount": 10,
}


def create_product(client, token, **overrides):
    payload = {**SNEAKER, **overrides}
    r = client.post("/api/products", json=payload, headers=auth(token))
    assert r.status_code == 201, r.text
    return r.json()["product"]


class TestUsers:
    def test_create_and_fetch_user(self, client):
        r = client.post("/api/users", json={"name": "Ann", "email": "ann@example.com", "password": PASSWORD, "role": "buyer"})
        assert r.status_code == 201
        user = r.json()["user"]
        assert set(user) == {"id", "name", "email", "role"}

        r = client.get(f"/api/users/{user['id']}")
        assert r.status_code == 200
        assert r.json() == user

        r = client.get("/api/users")
        assert r.json() == [user]

    def test_duplicate_email_is_rejected(self, client):
        payload = {"name": "Ann", "email": "ann@example.com", "password": PASSWORD, "role": "seller"}
        assert client.post("/api/users", json=payload).status_code == 201

        r = client.post("/api/users", json=payload)
        assert r.status_code == 400
        assert "already exists" in r.json()["error"]

    def test_unknown_role_is_rejected(self, client):
        r = client.post("/api/users", json={"name": "Ann", "email": "ann@example.com", "password": PASSWORD, "role": "admin"})
        assert r.status_code == 400
        assert "error" in r.json()

    def test_login_returns_token_and_user(self, client):
        register_and_login(client, "ann@example.com", "buyer")
        r = client.post("/api/users/login", json={"email": "ann@example.com", "password": PASSWORD})
        body = r.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["role"] == "buyer"

    def test_login_with_wrong_password_is_unauthorized(self, client):
        register_and_login(client, "ann@example.com", "buyer")
        r = client.post("/api/users/login", json={"email": "ann@example.com", "password": "nope"})
        assert r.status_code == 401

    def test_missing_user(self, client):
        assert client.get("/api/users/999").status_code == 404
        assert client.delete("/api/users/999").status_code == 404

    def test_deleting_buyer_removes_their_cart(self, client, seller_token, buyer_token, count_rows):
        product = create_product(client, seller_token)
        client.post("/api/cart/add", json={"product_id": product["id"], "quantity": 2}, headers=auth(buyer_token))
        buyer_id = client.get("/api/cart", headers=auth(buyer_token)).json()["buyer_id"]
        assert count_rows("carts") == 1
        assert count_rows("cart_items") == 1

        r = client.delete(f"/api/users/{buyer_id}")
        assert r.status_code == 200
        assert count_rows("carts") == 0
        assert count_rows("cart_items") == 0
        assert client.get(f"/api/products/{product['id']}").status_code == 200

    def test_out_of_range_user_id_is_invalid(self, client):
        assert client.get(f"/api/users/{2**63}").status_code == 400
        assert client.delete(f"/api/users/{2**63}").status_code == 400

    def test_deleting_seller_removes_their_products(self, client, seller_token):
        product = create_product(client, seller_token)
        seller_id = product["seller_id"]

        r = client.delete(f"/api/users/{seller_id}")
        assert r.status_code == 200
        assert client.get(f"/api/products/{product['id']}").status_code == 404


class TestProducts:
    def test_create_requires_a_token(self, client):
        r = client.post("/api/products", json=SNEAKER)
        assert r.status_code == 401

    def test_buyer_cannot_create_products(self, client, buyer_token):
        r = client.post("/api/products", json=SNEAKER, headers=auth(buyer_token))
        assert r.status_code == 403

    def test_invalid_token_is_unauthorized(self, client):
        r = client.post("/api/products", json=SNEAKER, headers=auth("garbage"))
        assert r.status_code == 401

    def test_created_product_is_found_by_exact_name(self, client, seller_token):
        product = create_product(client, seller_token)

        r = client.get("/api/search", params={"name": "Runner 3000"})
        assert r.status_code == 200
        assert r.json() == [product]
        assert product["category"] == "SHOES"
        assert product["price"] == 100.0
        assert product["discount"] == 10.0
        assert product["description"] == "Road running shoe"

    def test_search_is_case_insensitive(self, client, seller_token):
        create_product(client, seller_token)
        create_product(client, seller_token, name="Denim Jacket", category="clothes")

        r = client.get("/api/search", params={"name": "runner"})
        assert [p["name"] for p in r.json()] == ["Runner 3000"]

        r = client.get("/api/search", params={"category": "CLOTHES"})
        assert [p["name"] for p in r.json()] == ["Denim Jacket"]

        r = client.get("/api/search", params={"name": "jacket", "category": "shoes"})
        assert r.json() == []

        r = client.get("/api/search", params={"category": "furniture"})
        assert r.json() == []

        assert len(client.get("/api/search").json()) == 2
        assert len(client.get("/api/products").json()) == 2

    def test_price_and_discount_are_validated(self, client, seller_token):
        r = client.post("/api/products", json={**SNEAKER, "price": -1}, headers=auth(seller_token))
        assert r.status_code == 400
        r = client.post("/api/products", json={**SNEAKER, "discount": 101}, headers=auth(seller_token))
        assert r.status_code == 400

    def test_two_decimal_prices_round_trip_exactly(self, client, seller_token):
        product = create_product(client, seller_token, price=19.99, discount=12.5)

        found = client.get("/api/search", params={"name": SNEAKER["name"]}).json()
        assert found[0]["price"] == 19.99
        assert found[0]["discount"] == 12.5
        assert found == [product]

    def test_more_than_two_decimals_is_rejected(self, client, seller_token):
        headers = auth(seller_token)
        r = client.post("/api/products", json={**SNEAKER, "price": 19.999}, headers=headers)
        assert r.status_code == 400
        r = client.post("/api/products", json={**SNEAKER, "discount": 12.345}, headers=headers)
        assert r.status_code == 400
        assert client.get("/api/products").json() == []

        product = create_product(client, seller_token)
        r = client.put(f"/api/products/{product['id']}", json={"price": 1.005}, headers=headers)
        assert r.status_code == 400
        assert client.get(f"/api/products/{product['id']}").json()["price"] == 100.0

    def test_out_of_range_product_id_is_invalid(self, client, seller_token):
        assert client.get(f"/api/products/{2**63}").status_code == 400
        r = client.delete(f"/api/products/{2**63}", headers=auth(seller_token))
        assert r.status_code == 400

    def test_discount_defaults_to_zero(self, client, seller_token):
        payload = {k: v for k, v in SNEAKER.items() if k != "discount"}
        r = client.post("/api/products", json=payload, headers=auth(seller_token))
        assert r.json()["product"]["discount"] == 0.0

    def test_partial_update_keeps_omitted_fields(self, client, seller_token):
        product = create_product(client, seller_token)

        r = client.put(f"/api/products/{product['id']}", json={"price": 80, "discount": 0}, headers=auth(seller_token))
        assert r.status_code == 200
        updated = r.json()["product"]
        assert updated["price"] == 80.0
        assert updated["discount"] == 0.0
        assert updated["name"] == product["name"]
        assert updated["category"] == product["category"]

    def test_other_seller_cannot_edit_or_delete(self, client, seller_token, other_seller_token):
        product = create_product(client, seller_token)

        r = client.put(f"/api/products/{product['id']}", json={"price": 1}, headers=auth(other_seller_token))
        assert r.status_code == 403
        r = client.delete(f"/api/products/{product['id']}", headers=auth(other_seller_token))
        assert r.status_code == 403

        assert client.get(f"/api/products/{product['id']}").json() == product

    def test_owner_deletes_product(self, client, seller_token):
        product = create_product(client, seller_token)

        r = client.delete(f"/api/products/{product['id']}", headers=auth(seller_token))
        assert r.status_code == 200
        assert client.get(f"/api/products/{product['id']}").status_code == 404
        r = client.delete(f"/api/products/{product['id']}", headers=auth(seller_token))
        assert r.status_code == 404


class TestCart:
    def test_cart_requires_buyer_role(self, client, seller_token):
        assert client.get("/api/cart").status_code == 401
        assert client.get("/api/cart", headers=auth(seller_token)).status_code == 403

    def test_cart_not_found_before_first_add(self, client, buyer_token):
        r = client.get("/api/cart", headers=auth(buyer_token))
        assert r.status_code == 404
        r = client.delete("/api/cart/clear", headers=auth(buyer_token))
        assert r.status_code == 404

    def test_add_merges_and_values_the_cart(self, client, seller_token, buyer_token):
        product = create_product(client, seller_token)

        r = client.post("/api/cart/add", json={"product_id": product["id"], "quantity": 1}, headers=auth(buyer_token))
        assert r.status_code == 201
        assert r.json()["cart_item"]["quantity"] == 1

        r = client.post("/api/cart/add", json={"product_id": product["id"], "quantity": 1}, headers=auth(buyer_token))
        assert r.status_code == 200
        assert r.json()["cart_item"]["quantity"] == 2

        r = client.get("/api/cart", headers=auth(buyer_token))
        assert r.status_code == 200
        view = r.json()
        assert view["count"] == 1
        line = view["items"][0]
        assert line["quantity"] == 2
        assert line["discount_amount"] == 10.0
        assert line["unit_price_after_discount"] == 90.0
        assert line["line_total"] == 180.0
        assert view["total"] == 180.0

    def test_add_rejects_bad_input(self, client, seller_token, buyer_token):
        product = create_product(client, seller_token)
        headers = auth(buyer_token)

        assert client.post("/api/cart/add", json={"product_id": product["id"], "quantity": 0}, headers=headers).status_code == 400
        assert client.post("/api/cart/add", json={"product_id": product["id"], "quantity": -3}, headers=headers).status_code == 400
        assert client.post("/api/cart/add", json={"quantity": 1}, headers=headers).status_code == 400
        assert client.post("/api/cart/add", json={"product_id": 999, "quantity": 1}, headers=headers).status_code == 404

    def test_out_of_range_integers_are_invalid_input(self, client, seller_token, buyer_token):
        product = create_product(client, seller_token)
        headers = auth(buyer_token)

        r = client.post("/api/cart/add", json={"product_id": product["id"], "quantity": 2**63}, headers=headers)
        assert r.status_code == 400
        r = client.post("/api/cart/add", json={"product_id": 2**63, "quantity": 1}, headers=headers)
        assert r.status_code == 400
        r = client.delete(f"/api/cart/{2**63}", headers=headers)
        assert r.status_code == 400

    def test_merge_past_integer_limit_is_invalid_input(self, client, seller_token, buyer_token):
        product = create_product(client, seller_token)
        headers = auth(buyer_token)
        max_int = 2**31 - 1

        r = client.post("/api/cart/add", json={"product_id": product["id"], "quantity": max_int}, headers=headers)
        assert r.status_code == 201
        r = client.post("/api/cart/add", json={"product_id": product["id"], "quantity": 1}, headers=headers)
        assert r.status_code == 400
        assert client.get("/api/cart", headers=headers).json()["items"][0]["quantity"] == max_int

    def test_remove_line(self, client, seller_token, buyer_token):
        product = create_product(client, seller_token)
        other = create_product(client, seller_token, name="Other")
        headers = auth(buyer_token)
        client.post("/api/cart/add", json={"product_id": product["id"]}, headers=headers)

        r = client.delete(f"/api/cart/{other['id']}", headers=headers)
        assert r.status_code == 404

        r = client.delete(f"/api/cart/{product['id']}", headers=headers)
        assert r.status_code == 200
        assert r.json()["count"] == 1
        assert client.get("/api/cart", headers=headers).json()["items"] == []

    def test_clear_cart_twice(self, client, seller_token, buyer_token):
        product = create_product(client, seller_token)
        headers = auth(buyer_token)
        client.post("/api/cart/add", json={"product_id": product["id"], "quantity": 3}, headers=headers)

        r = client.delete("/api/cart/clear", headers=headers)
        assert r.status_code == 200
        assert r.json()["count"] == 1

        r = client.delete("/api/cart/clear", headers=headers)
        assert r.status_code == 200
        assert r.json()["count"] == 0

        view = client.get("/api/cart", headers=headers).json()
        assert view == {"buyer_id": view["buyer_id"], "items": [], "count": 0, "total": 0.0}


def test_health_and_docs(client):
    assert client.get("/health").json() == {"status": "ok"}
    schema = client.get("/api/openapi.json").json()
    assert "HTTPBearer" in schema["components"]["securitySchemes"]
