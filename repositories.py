"""
SQL repositories

Every statement is literal SQL run through sqlalchemy.text with bound
parameters. Each call checks a connection out of the engine's pool inside a
`with` block; writes use engine.begin() so they commit or roll back as one.
"""
import logging
from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from errors import ConflictError
from schemas import Category, Product, Profile, ShoppingCart, ShoppingCartItem, User

logger = logging.getLogger(__name__)


class Repository:
    def __init__(self, engine: Engine):
        self.engine = engine

    @contextmanager
    def transaction(self, conn: Optional[Connection] = None):
        """Join the caller's transaction when given one, else open our own."""
        if conn is not None:
            yield conn
        else:
            with self.engine.begin() as conn:
                yield conn


class CategoryRepository(Repository):

    def list_all(self) -> List[Category]:
        sql = text("SELECT category_id, name, description FROM categories ORDER BY category_id")
        with self.engine.connect() as conn:
            return [Category(**row) for row in conn.execute(sql).mappings()]

    def get_by_id(self, category_id: int) -> Optional[Category]:
        sql = text("SELECT category_id, name, description FROM categories WHERE category_id = :category_id")
        with self.engine.connect() as conn:
            row = conn.execute(sql, {"category_id": category_id}).mappings().first()
        return Category(**row) if row else None

    def create(self, category: Category) -> Category:
        sql = text("INSERT INTO categories (name, description) VALUES (:name, :description)")
        with self.engine.begin() as conn:
            result = conn.execute(sql, {"name": category.name, "description": category.description})
            category_id = result.lastrowid
        logger.info("Created category %s", category_id)
        return category.model_copy(update={"category_id": category_id})

    def update(self, category_id: int, category: Category) -> bool:
        sql = text("""
            UPDATE categories
            SET name = :name, description = :description
            WHERE category_id = :category_id
        """)
        with self.engine.begin() as conn:
            rows = conn.execute(sql, {
                "name": category.name,
                "description": category.description,
                "category_id": category_id,
            }).rowcount
        logger.info("%d category rows updated", rows)
        return rows > 0

    def has_products(self, category_id: int) -> bool:
        sql = text("SELECT 1 FROM products WHERE category_id = :category_id LIMIT 1")
        with self.engine.connect() as conn:
            return conn.execute(sql, {"category_id": category_id}).first() is not None

    def delete(self, category_id: int) -> bool:
        sql = text("DELETE FROM categories WHERE category_id = :category_id")
        with self.engine.begin() as conn:
            rows = conn.execute(sql, {"category_id": category_id}).rowcount
        logger.info("%d category rows deleted", rows)
        return rows > 0


PRODUCT_COLUMNS = "product_id, name, price, category_id, description, color, image_url, stock, featured"


class ProductRepository(Repository):

    def search(self, category_id: Optional[int] = None, min_price: Optional[float] = None,
               max_price: Optional[float] = None, color: Optional[str] = None) -> List[Product]:
        clauses = []
        params = {}
        if category_id is not None:
            clauses.append("category_id = :category_id")
            params["category_id"] = category_id
        if min_price is not None:
            clauses.append("price >= :min_price")
            params["min_price"] = min_price
        if max_price is not None:
            clauses.append("price <= :max_price")
            params["max_price"] = max_price
        if color:
            clauses.append("color = :color")
            params["color"] = color
        sql = f"SELECT {PRODUCT_COLUMNS} FROM products"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY product_id"
        with self.engine.connect() as conn:
            return [Product(**row) for row in conn.execute(text(sql), params).mappings()]

    def list_by_category_id(self, category_id: int) -> List[Product]:
        return self.search(category_id=category_id)

    def get_by_id(self, product_id: int) -> Optional[Product]:
        sql = text(f"SELECT {PRODUCT_COLUMNS} FROM products WHERE product_id = :product_id")
        with self.engine.connect() as conn:
            row = conn.execute(sql, {"product_id": product_id}).mappings().first()
        return Product(**row) if row else None

    def create(self, product: Product) -> Product:
        sql = text("""
            INSERT INTO products (name, price, category_id, description, color, image_url, stock, featured)
            VALUES (:name, :price, :category_id, :description, :color, :image_url, :stock, :featured)
        """)
        with self.engine.begin() as conn:
            result = conn.execute(sql, product.model_dump(exclude={"product_id"}))
            product_id = result.lastrowid
        logger.info("Created product %s", product_id)
        return product.model_copy(update={"product_id": product_id})

    def update(self, product_id: int, product: Product) -> bool:
        sql = text("""
            UPDATE products
            SET name = :name, price = :price, category_id = :category_id, description = :description,
                color = :color, image_url = :image_url, stock = :stock, featured = :featured
            WHERE product_id = :product_id
        """)
        params = product.model_dump(exclude={"product_id"})
        params["product_id"] = product_id
        with self.engine.begin() as conn:
            rows = conn.execute(sql, params).rowcount
        logger.info("%d product rows updated", rows)
        return rows > 0

    def delete(self, product_id: int) -> bool:
        with self.engine.begin() as conn:
            conn.execute(text("DELETE FROM shopping_cart WHERE product_id = :product_id"), {"product_id": product_id})
            rows = conn.execute(text("DELETE FROM products WHERE product_id = :product_id"),
                                {"product_id": product_id}).rowcount
        logger.info("%d product rows deleted", rows)
        return rows > 0


class UserRepository(Repository):

    def get_by_username(self, username: str) -> Optional[dict]:
        """Return the raw user row, hashed password included, or None."""
        sql = text("SELECT user_id, username, hashed_password, role FROM users WHERE username = :username")
        with self.engine.connect() as conn:
            row = conn.execute(sql, {"username": username}).mappings().first()
        return dict(row) if row else None

    def exists(self, username: str) -> bool:
        return self.get_by_username(username) is not None

    def create(self, username: str, hashed_password: str, role: str, conn: Optional[Connection] = None) -> User:
        try:
            with self.transaction(conn) as conn:
                user_id = conn.execute(
                    text("INSERT INTO users (username, hashed_password, role) VALUES (:username, :hashed_password, :role)"),
                    {"username": username, "hashed_password": hashed_password, "role": role},
                ).lastrowid
        except IntegrityError:
            raise ConflictError("User already exists")
        logger.info("Registered user %s (%s)", username, role)
        return User(id=user_id, username=username, role=role)


PROFILE_FIELDS = ["first_name", "last_name", "phone", "email", "address", "city", "state", "zip"]


class ProfileRepository(Repository):

    def create(self, profile: Profile, conn: Optional[Connection] = None) -> Profile:
        sql = text("""
            INSERT INTO profiles (user_id, first_name, last_name, phone, email, address, city, state, zip)
            VALUES (:user_id, :first_name, :last_name, :phone, :email, :address, :city, :state, :zip)
        """)
        try:
            with self.transaction(conn) as conn:
                conn.execute(sql, profile.model_dump())
        except IntegrityError:
            raise ConflictError("Profile already exists")
        return profile

    def get(self, user_id: int) -> Optional[Profile]:
        sql = text(f"SELECT user_id, {', '.join(PROFILE_FIELDS)} FROM profiles WHERE user_id = :user_id")
        with self.engine.connect() as conn:
            row = conn.execute(sql, {"user_id": user_id}).mappings().first()
        return Profile(**row) if row else None

    def update(self, user_id: int, profile: Profile) -> bool:
        assignments = ", ".join(f"{field} = :{field}" for field in PROFILE_FIELDS)
        sql = text(f"UPDATE profiles SET {assignments} WHERE user_id = :user_id")
        params = profile.model_dump(include=set(PROFILE_FIELDS))
        params["user_id"] = user_id
        with self.engine.begin() as conn:
            rows = conn.execute(sql, params).rowcount
        return rows > 0


# Insert at quantity 1, else increment, as one statement. Both forms need the
# (user_id, product_id) primary key on shopping_cart.
UPSERT_CART_ROW = {
    "mysql": """
        INSERT INTO shopping_cart (user_id, product_id, quantity)
        VALUES (:user_id, :product_id, 1)
        ON DUPLICATE KEY UPDATE quantity = quantity + 1
    """,
    "default": """
        INSERT INTO shopping_cart (user_id, product_id, quantity)
        VALUES (:user_id, :product_id, 1)
        ON CONFLICT (user_id, product_id) DO UPDATE SET quantity = shopping_cart.quantity + 1
    """,
}


class ShoppingCartRepository(Repository):

    def get_by_user_id(self, user_id: int) -> ShoppingCart:
        sql = text("""
            SELECT sc.product_id, sc.quantity,
                   p.name, p.price, p.category_id, p.description,
                   p.color, p.image_url, p.stock, p.featured
            FROM shopping_cart sc
            JOIN products p ON sc.product_id = p.product_id
            WHERE sc.user_id = :user_id
            ORDER BY sc.product_id
        """)
        items = []
        with self.engine.connect() as conn:
            for row in conn.execute(sql, {"user_id": user_id}).mappings():
                product = Product(**{k: v for k, v in row.items() if k != "quantity"})
                items.append(ShoppingCartItem(
                    product_id=product.product_id,
                    quantity=row["quantity"],
                    product=product,
                    line_total=round(product.price * row["quantity"], 2),
                ))
        total = round(sum(item.line_total for item in items), 2)
        return ShoppingCart(items=items, total=total)

    def add_product(self, user_id: int, product_id: int):
        sql = UPSERT_CART_ROW.get(self.engine.dialect.name, UPSERT_CART_ROW["default"])
        with self.engine.begin() as conn:
            conn.execute(text(sql), {"user_id": user_id, "product_id": product_id})
        logger.info("Added product %s to cart of user %s", product_id, user_id)

    def update_product_quantity(self, user_id: int, product_id: int, quantity: int) -> bool:
        if quantity == 0:
            return self.remove_product(user_id, product_id)
        sql = text("""
            UPDATE shopping_cart
            SET quantity = :quantity
            WHERE user_id = :user_id AND product_id = :product_id
        """)
        with self.engine.begin() as conn:
            rows = conn.execute(sql, {"quantity": quantity, "user_id": user_id, "product_id": product_id}).rowcount
        logger.info("%d cart rows updated for user %s", rows, user_id)
        return rows > 0

    def remove_product(self, user_id: int, product_id: int) -> bool:
        sql = text("DELETE FROM shopping_cart WHERE user_id = :user_id AND product_id = :product_id")
        with self.engine.begin() as conn:
            rows = conn.execute(sql, {"user_id": user_id, "product_id": product_id}).rowcount
        return rows > 0

    def clear_cart(self, user_id: int):
        with self.engine.begin() as conn:
            rows = conn.execute(text("DELETE FROM shopping_cart WHERE user_id = :user_id"), {"user_id": user_id}).rowcount
        logger.info("Cleared %d cart rows for user %s", rows, user_id)
