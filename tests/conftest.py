"""
Shared fixtures

Every test runs against its own in-memory SQLite database with the
storefront schema created. The app's engine dependency is overridden so the
real routes, auth and repositories are exercised end to end.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from auth import hash_password
from database import build_engine, get_engine, init_schema
from main import app
from repositories import CategoryRepository, ProductRepository, ProfileRepository, UserRepository
from schemas import ROLE_ADMIN, ROLE_USER, Category, Product, Profile

PASSWORD = "password"
ADMIN = ("admin", PASSWORD)
USER = ("george", PASSWORD)
OTHER_USER = ("ringo", PASSWORD)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def users(engine):
    """Admin plus two shoppers, each with a profile row."""
    repo = UserRepository(engine)
    profiles = ProfileRepository(engine)
    created = {}
    for (username, password), role in ((ADMIN, ROLE_ADMIN), (USER, ROLE_USER), (OTHER_USER, ROLE_USER)):
        user = repo.create(username, hash_password(password), role)
        profiles.create(Profile(user_id=user.id, first_name=username.title()))
        created[username] = user
    return created


@pytest.fixture
def catalog(engine):
    """
    Three categories (the third one empty) and seven products.

    Product 7 is the one the cart scenarios use.
    """
    categories = CategoryRepository(engine)
    electronics = categories.create(Category(name="Electronics", description="Gadgets and devices"))
    fashion = categories.create(Category(name="Fashion", description="Clothes and shoes"))
    categories.create(Category(name="Garden", description="Nothing here yet"))

    products = ProductRepository(engine)
    rows = [
        ("Smartphone", 499.5, electronics.category_id, "Black", True),
        ("Laptop", 1200.0, electronics.category_id, "Gray", False),
        ("Headphones", 80.0, electronics.category_id, "Black", False),
        ("T-Shirt", 15.0, fashion.category_id, "Red", False),
        ("Jeans", 45.0, fashion.category_id, "Blue", True),
        ("Sneakers", 60.0, fashion.category_id, "White", False),
        ("Hoodie", 19.99, fashion.category_id, "Red", False),
    ]
    for name, price, category_id, color, featured in rows:
        products.create(Product(name=name, price=price, category_id=category_id, color=color,
                                stock=10, featured=featured, description=f"{name} description"))
    return {"electronics": electronics, "fashion": fashion}


@pytest.fixture
def client(engine, users):
    app.dependency_overrides[get_engine] = lambda: engine

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()
