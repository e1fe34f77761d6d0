import logging
import os
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from auth import current_user, hash_password, require_admin
from database import build_engine, get_engine, init_schema, table_names
from errors import BadRequestError, ConflictError, NotFoundError, register_error_handlers
from repositories import (
    CategoryRepository,
    ProductRepository,
    ProfileRepository,
    ShoppingCartRepository,
    UserRepository,
)
from schemas import (
    ROLE_USER,
    Category,
    Message,
    Product,
    Profile,
    RegisterUser,
    ShoppingCart,
    UpdateCartItem,
    User,
)

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"),
                    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = build_engine()
    if os.getenv("DB_INIT_SCHEMA", "true").lower() in ("1", "true", "yes"):
        init_schema(engine)
    app.state.engine = engine
    yield
    engine.dispose()


app = FastAPI(title="EasyShop API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


# Repositories, built per request around the app's engine
def categories_repo(engine: Engine = Depends(get_engine)) -> CategoryRepository:
    return CategoryRepository(engine)

def products_repo(engine: Engine = Depends(get_engine)) -> ProductRepository:
    return ProductRepository(engine)

def users_repo(engine: Engine = Depends(get_engine)) -> UserRepository:
    return UserRepository(engine)

def profiles_repo(engine: Engine = Depends(get_engine)) -> ProfileRepository:
    return ProfileRepository(engine)

def cart_repo(engine: Engine = Depends(get_engine)) -> ShoppingCartRepository:
    return ShoppingCartRepository(engine)


# Health
@app.get("/")
def read_root():
    return {"message": "EasyShop backend running"}

@app.get("/test")
def test_database(engine: Engine = Depends(get_engine)):
    try:
        tables = table_names(engine)
        return {"backend": "ok", "db": engine.dialect.name, "tables": tables}
    except Exception as e:
        logger.warning("Database check failed: %s", e)
        return {"backend": "ok", "db": f"error: {str(e)[:80]}"}

# Registration (no tokens; requests authenticate with HTTP Basic)
@app.post("/register", response_model=User, status_code=201)
def register(payload: RegisterUser,
             engine: Engine = Depends(get_engine),
             users: UserRepository = Depends(users_repo),
             profiles: ProfileRepository = Depends(profiles_repo)):
    if payload.password != payload.confirm_password:
        raise BadRequestError("Passwords do not match")
    if users.exists(payload.username):
        raise ConflictError("User already exists")
    # user and profile commit together or not at all
    with engine.begin() as conn:
        user = users.create(payload.username, hash_password(payload.password), ROLE_USER, conn=conn)
        profiles.create(Profile(user_id=user.id), conn=conn)
    return user

# Categories
@app.get("/categories", response_model=List[Category])
def list_categories(categories: CategoryRepository = Depends(categories_repo)):
    found = categories.list_all()
    if not found:
        raise NotFoundError("No categories found")
    return found

@app.get("/categories/{category_id}", response_model=Category)
def get_category(category_id: int, categories: CategoryRepository = Depends(categories_repo)):
    category = categories.get_by_id(category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return category

@app.get("/categories/{category_id}/products", response_model=List[Product])
def list_category_products(category_id: int, products: ProductRepository = Depends(products_repo)):
    found = products.list_by_category_id(category_id)
    if not found:
        raise NotFoundError("No products found")
    return found

@app.post("/categories", response_model=Category, status_code=201, dependencies=[Depends(require_admin)])
def create_category(category: Category, categories: CategoryRepository = Depends(categories_repo)):
    return categories.create(category)

@app.put("/categories/{category_id}", status_code=204, dependencies=[Depends(require_admin)])
def update_category(category_id: int, category: Category,
                    categories: CategoryRepository = Depends(categories_repo)):
    if not categories.update(category_id, category):
        raise NotFoundError("Category not found")

@app.delete("/categories/{category_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_category(category_id: int, categories: CategoryRepository = Depends(categories_repo)):
    if categories.get_by_id(category_id) is None:
        raise NotFoundError("Category not found")
    if categories.has_products(category_id):
        raise ConflictError("Category still has products")
    if not categories.delete(category_id):
        raise NotFoundError("Category not found")

# Products
@app.get("/products", response_model=List[Product])
def search_products(
    cat: Optional[int] = None,
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    color: Optional[str] = None,
    products: ProductRepository = Depends(products_repo),
):
    return products.search(category_id=cat, min_price=min_price, max_price=max_price, color=color)

@app.get("/products/{product_id}", response_model=Product)
def get_product(product_id: int, products: ProductRepository = Depends(products_repo)):
    product = products.get_by_id(product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product

@app.post("/products", response_model=Product, status_code=201, dependencies=[Depends(require_admin)])
def create_product(product: Product, products: ProductRepository = Depends(products_repo)):
    return products.create(product)

@app.put("/products/{product_id}", status_code=204, dependencies=[Depends(require_admin)])
def update_product(product_id: int, product: Product, products: ProductRepository = Depends(products_repo)):
    if not products.update(product_id, product):
        raise NotFoundError("Product not found")

@app.delete("/products/{product_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_product(product_id: int, products: ProductRepository = Depends(products_repo)):
    if not products.delete(product_id):
        raise NotFoundError("Product not found")

# Cart
@app.get("/cart", response_model=ShoppingCart)
def get_cart(user: User = Depends(current_user), cart: ShoppingCartRepository = Depends(cart_repo)):
    return cart.get_by_user_id(user.id)

@app.post("/cart/products/{product_id}", response_model=Product)
def add_to_cart(product_id: int,
                user: User = Depends(current_user),
                cart: ShoppingCartRepository = Depends(cart_repo),
                products: ProductRepository = Depends(products_repo)):
    product = products.get_by_id(product_id)
    if product is None:
        raise NotFoundError("Product not found")
    cart.add_product(user.id, product_id)
    return product

@app.put("/cart/products/{product_id}", response_model=Message)
def update_cart_item(product_id: int, item: UpdateCartItem,
                     user: User = Depends(current_user),
                     cart: ShoppingCartRepository = Depends(cart_repo)):
    if not cart.update_product_quantity(user.id, product_id, item.quantity):
        raise NotFoundError("Product not found in cart")
    if item.quantity == 0:
        return Message(message="Product removed from cart")
    return Message(message="Product quantity updated successfully")

@app.delete("/cart/products/{product_id}", status_code=204)
def remove_from_cart(product_id: int,
                     user: User = Depends(current_user),
                     cart: ShoppingCartRepository = Depends(cart_repo)):
    if not cart.remove_product(user.id, product_id):
        raise NotFoundError("Product not found in cart")

@app.delete("/cart", response_model=Message)
def clear_cart(user: User = Depends(current_user), cart: ShoppingCartRepository = Depends(cart_repo)):
    cart.clear_cart(user.id)
    return Message(message="All products have been removed from the cart")

# Profile
@app.get("/profile", response_model=Profile)
def get_profile(user: User = Depends(current_user), profiles: ProfileRepository = Depends(profiles_repo)):
    profile = profiles.get(user.id)
    if profile is None:
        raise NotFoundError("Profile not found")
    return profile

@app.put("/profile", response_model=Profile)
def update_profile(payload: Profile,
                   user: User = Depends(current_user),
                   profiles: ProfileRepository = Depends(profiles_repo)):
    if not profiles.update(user.id, payload):
        raise NotFoundError("Profile not found")
    return profiles.get(user.id)

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
