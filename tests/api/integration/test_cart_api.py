"""Integration tests for the cart endpoints."""


def _product(client, product_id, price=10.0, stock=20):
    client.post(
        "/products",
        json={"product_id": product_id, "name": f"Product {product_id}", "price": price, "stock": stock},
    )
    return product_id


def _cart(client, **owner):
    response = client.post("/carts", json=owner)
    assert response.status_code == 201
    return response.json()["cart_id"]


class TestCartEndpoints:
    def test_add_update_remove(self, client):
        _product(client, "A")
        _product(client, "B", price=2.5)
        cart_id = _cart(client, session_id="sess-1")

        client.post(f"/carts/{cart_id}/items", json={"product_id": "A", "quantity": 1})
        client.post(f"/carts/{cart_id}/items", json={"product_id": "B", "quantity": 2})
        client.put(f"/carts/{cart_id}/items/A", json={"quantity": 3})
        response = client.delete(f"/carts/{cart_id}/items/B")

        data = response.json()
        assert [(line["product_id"], line["quantity"]) for line in data["items"]] == [("A", 3)]
        assert data["total"] == 30.0

    def test_unknown_product_is_rejected(self, client):
        cart_id = _cart(client, session_id="sess-1")
        response = client.post(f"/carts/{cart_id}/items", json={"product_id": "ghost", "quantity": 1})
        assert response.status_code == 400

    def test_unknown_cart_is_not_found(self, client):
        assert client.get("/carts/no-such-cart").status_code == 404

    def test_clear(self, client):
        _product(client, "A")
        cart_id = _cart(client, customer_id="cust-1")
        client.post(f"/carts/{cart_id}/items", json={"product_id": "A", "quantity": 1})
        response = client.delete(f"/carts/{cart_id}/items")
        assert response.json()["items"] == []

    def test_reconcile(self, client):
        _product(client, "A")
        _product(client, "B")
        guest = _cart(client, session_id="sess-1")
        customer = _cart(client, customer_id="cust-1")
        client.post(f"/carts/{guest}/items", json={"product_id": "A", "quantity": 2})
        client.post(f"/carts/{customer}/items", json={"product_id": "A", "quantity": 1})
        client.post(f"/carts/{customer}/items", json={"product_id": "B", "quantity": 3})

        response = client.post("/carts/reconcile", json={"customer_id": "cust-1", "session_id": "sess-1"})
        again = client.post("/carts/reconcile", json={"customer_id": "cust-1", "session_id": "sess-1"})

        assert response.status_code == 200
        assert {line["product_id"]: line["quantity"] for line in again.json()["items"]} == {"A": 3, "B": 3}
        assert client.get(f"/carts/{guest}").json()["items"] == []
