from fastapi.testclient import TestClient

from tests.conftest import ADMIN, USER


class TestSearchProducts:

    def test_no_filters_returns_everything(self, client: TestClient, catalog):
        response = client.get("/products")

        assert response.status_code == 200
        assert len(response.json()) == 7

    def test_filters_combine(self, client: TestClient, catalog):
        response = client.get("/products", params={"cat": 2, "minPrice": 16, "color": "Red"})

        assert [p["name"] for p in response.json()] == ["Hoodie"]

    def test_price_range(self, client: TestClient, catalog):
        response = client.get("/products", params={"minPrice": 50, "maxPrice": 500})

        assert [p["name"] for p in response.json()] == ["Smartphone", "Headphones", "Sneakers"]

    def test_no_match_is_empty_list(self, client: TestClient, catalog):
        response = client.get("/products", params={"color": "Purple"})

        assert response.status_code == 200
        assert response.json() == []

    def test_get_product(self, client: TestClient, catalog):
        data = client.get("/products/1").json()

        assert data["name"] == "Smartphone"
        assert data["price"] == 499.5
        assert data["featured"] is True
        assert data["imageUrl"] is None

    def test_get_missing_product(self, client: TestClient, catalog):
        assert client.get("/products/999").status_code == 404


class TestManageProducts:

    def new_product(self):
        return {"name": "Scarf", "price": 12.5, "categoryId": 2, "color": "Green", "stock": 3,
                "imageUrl": "scarf.jpg"}

    def test_admin_creates_product(self, client: TestClient, catalog):
        response = client.post("/products", json=self.new_product(), auth=ADMIN)

        assert response.status_code == 201
        assert response.json()["productId"] == 8
        assert client.get("/products/8").json()["imageUrl"] == "scarf.jpg"

    def test_non_admin_cannot_create(self, client: TestClient, catalog):
        response = client.post("/products", json=self.new_product(), auth=USER)

        assert response.status_code == 403
        assert client.get("/products/8").status_code == 404

    def test_admin_updates_product(self, client: TestClient, catalog):
        product = self.new_product()
        product["price"] = 99.0

        response = client.put("/products/7", json=product, auth=ADMIN)

        assert response.status_code == 204
        data = client.get("/products/7").json()
        assert data["name"] == "Scarf"
        assert data["price"] == 99.0

    def test_update_missing_product(self, client: TestClient, catalog):
        response = client.put("/products/999", json=self.new_product(), auth=ADMIN)

        assert response.status_code == 404

    def test_delete_product_removes_it_from_carts(self, client: TestClient, catalog):
        client.post("/cart/products/7", auth=USER)

        response = client.delete("/products/7", auth=ADMIN)

        assert response.status_code == 204
        assert client.get("/products/7").status_code == 404
        assert client.get("/cart", auth=USER).json()["items"] == []

    def test_delete_missing_product(self, client: TestClient, catalog):
        assert client.delete("/products/999", auth=ADMIN).status_code == 404

    def test_values_longer_than_their_column_are_rejected(self, client: TestClient, catalog):
        product = self.new_product()
        product["color"] = "Ultramarine with gold"

        response = client.post("/products", json=product, auth=ADMIN)

        assert response.status_code == 422
        assert client.get("/products/8").status_code == 404
