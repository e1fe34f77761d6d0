"""
Repository behaviour against the database directly, no HTTP in between
"""
import pytest
from fastapi.testclient import TestClient

from errors import ConflictError
from repositories import CategoryRepository, ProfileRepository, ShoppingCartRepository, UserRepository
from schemas import Category, Profile


class TestShoppingCartRepository:

    def test_add_product_inserts_then_increments(self, engine, users, catalog):
        carts = ShoppingCartRepository(engine)
        user_id = users["george"].id

        for _ in range(3):
            carts.add_product(user_id, 2)

        cart = carts.get_by_user_id(user_id)
        assert [(item.product_id, item.quantity) for item in cart.items] == [(2, 3)]
        assert cart.total == pytest.approx(3600.0)

    def test_update_quantity_reports_missing_row(self, engine, users, catalog):
        carts = ShoppingCartRepository(engine)

        assert carts.update_product_quantity(users["george"].id, 2, 5) is False
        assert carts.get_by_user_id(users["george"].id).items == []

    def test_clear_empty_cart(self, engine, users):
        carts = ShoppingCartRepository(engine)

        carts.clear_cart(users["george"].id)
        carts.clear_cart(users["george"].id)

        assert carts.get_by_user_id(users["george"].id).items == []


class TestCategoryRepository:

    def test_create_assigns_id(self, engine):
        category = CategoryRepository(engine).create(Category(name="Books"))

        assert category.category_id == 1
        assert CategoryRepository(engine).get_by_id(1).name == "Books"

    def test_update_and_delete_missing_rows(self, engine):
        categories = CategoryRepository(engine)

        assert categories.update(42, Category(name="Nope")) is False
        assert categories.delete(42) is False
        assert categories.get_by_id(42) is None

    def test_has_products(self, engine, catalog):
        categories = CategoryRepository(engine)

        assert categories.has_products(1) is True
        assert categories.has_products(3) is False


class TestUserAndProfileRepositories:

    def test_lookup_by_username(self, engine, users):
        row = UserRepository(engine).get_by_username("admin")

        assert row["role"] == "ROLE_ADMIN"
        assert row["hashed_password"] != "password"
        assert UserRepository(engine).get_by_username("nobody") is None

    def test_user_and_profile_share_a_transaction(self, engine, users):
        users_repo = UserRepository(engine)
        profiles = ProfileRepository(engine)

        with pytest.raises(ConflictError):
            with engine.begin() as conn:
                user = users_repo.create("paul", "hash", "ROLE_USER", conn=conn)
                profiles.create(Profile(user_id=user.id), conn=conn)
                profiles.create(Profile(user_id=user.id), conn=conn)

        assert users_repo.get_by_username("paul") is None

    def test_second_profile_for_user_conflicts(self, engine, users):
        with pytest.raises(ConflictError):
            ProfileRepository(engine).create(Profile(user_id=users["george"].id))

    def test_missing_profile(self, engine):
        assert ProfileRepository(engine).get(99) is None


class TestHealth:

    def test_database_check_lists_tables(self, client: TestClient):
        data = client.get("/test").json()

        assert data["db"] == "sqlite"
        assert {"categories", "products", "users", "profiles", "shopping_cart"} <= set(data["tables"])
