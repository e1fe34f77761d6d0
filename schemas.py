"""
API Schemas for the EasyShop storefront

Each Pydantic model mirrors a row (or a view over rows) of the relational
store. Field names follow the table columns; JSON uses camelCase aliases,
snake_case is accepted on input too.

- Category -> "categories"
- Product -> "products"
- User -> "users"
- Profile -> "profiles"
- ShoppingCartItem -> "shopping_cart" joined with "products"
"""
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

ROLE_USER = "ROLE_USER"
ROLE_ADMIN = "ROLE_ADMIN"

Role = Literal["ROLE_USER", "ROLE_ADMIN"]


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Category(ApiModel):
    category_id: Optional[int] = Field(None, description="Generated on insert")
    name: str = Field(..., min_length=1, max_length=50, description="Category name")
    description: Optional[str] = Field(None, description="Category description")


class Product(ApiModel):
    product_id: Optional[int] = Field(None, description="Generated on insert")
    name: str = Field(..., min_length=1, max_length=50, description="Product name")
    price: float = Field(..., ge=0, description="Unit price")
    category_id: int = Field(..., description="Owning category")
    description: Optional[str] = None
    color: Optional[str] = Field(None, max_length=20)
    image_url: Optional[str] = Field(None, max_length=200)
    stock: int = Field(0, ge=0)
    featured: bool = False


class User(ApiModel):
    id: int
    username: str
    role: Role = ROLE_USER


class RegisterUser(ApiModel):
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)
    confirm_password: str = Field(..., min_length=1)


class Profile(ApiModel):
    user_id: Optional[int] = None
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=50)
    state: Optional[str] = Field(None, max_length=2)
    zip: Optional[str] = Field(None, max_length=20)

    @field_validator("email")
    @classmethod
    def email_fits_column(cls, value):
        if value is not None and len(value) > 200:
            raise ValueError("email must be at most 200 characters")
        return value


class ShoppingCartItem(ApiModel):
    product_id: int
    quantity: int
    product: Product
    line_total: float


class ShoppingCart(ApiModel):
    items: List[ShoppingCartItem] = Field(default_factory=list)
    total: float = 0


class UpdateCartItem(ApiModel):
    quantity: int = Field(..., ge=0, description="0 removes the product from the cart")


class Message(BaseModel):
    message: str
