"""
Database access

Builds the SQLAlchemy engine (connection pool) from environment settings and
creates the storefront tables when they are missing. The engine belongs to the
FastAPI application (app.state.engine); request handlers receive it through
the get_engine dependency and hand it to the repositories.
"""
import logging
import os
from typing import Optional

from fastapi import Request
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./easyshop.db"

# MySQL DDL; SQLite accepts it once AUTO_INCREMENT is dropped. shopping_cart's composite key is
# what the cart upsert relies on.
SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        user_id INTEGER PRIMARY KEY AUTO_INCREMENT,
        username VARCHAR(50) NOT NULL UNIQUE,
        hashed_password VARCHAR(255) NOT NULL,
        role VARCHAR(50) NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS profiles (
        user_id INTEGER NOT NULL PRIMARY KEY,
        first_name VARCHAR(50),
        last_name VARCHAR(50),
        phone VARCHAR(20),
        email VARCHAR(200),
        address VARCHAR(200),
        city VARCHAR(50),
        state VARCHAR(2),
        zip VARCHAR(20),
        FOREIGN KEY (user_id) REFERENCES users (user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS categories (
        category_id INTEGER PRIMARY KEY AUTO_INCREMENT,
        name VARCHAR(50) NOT NULL,
        description TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS products (
        product_id INTEGER PRIMARY KEY AUTO_INCREMENT,
        name VARCHAR(50) NOT NULL,
        price DECIMAL(10, 2) NOT NULL,
        category_id INTEGER NOT NULL,
        description TEXT,
        color VARCHAR(20),
        image_url VARCHAR(200),
        stock INTEGER NOT NULL DEFAULT 0,
        featured BOOLEAN NOT NULL DEFAULT 0,
        FOREIGN KEY (category_id) REFERENCES categories (category_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS shopping_cart (
        user_id INTEGER NOT NULL,
        product_id INTEGER NOT NULL,
        quantity INTEGER NOT NULL DEFAULT 1,
        PRIMARY KEY (user_id, product_id),
        FOREIGN KEY (user_id) REFERENCES users (user_id),
        FOREIGN KEY (product_id) REFERENCES products (product_id)
    )
    """,
]


def _connect_args(url: str, timeout: int) -> dict:
    if url.startswith("sqlite"):
        return {"timeout": timeout, "check_same_thread": False}
    if url.startswith("mysql"):
        return {"connect_timeout": timeout, "read_timeout": timeout, "write_timeout": timeout}
    return {}


def build_engine(url: Optional[str] = None, **kwargs) -> Engine:
    url = url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    connect_timeout = int(os.getenv("DB_CONNECT_TIMEOUT", "10"))
    options = {"pool_pre_ping": True, "connect_args": _connect_args(url, connect_timeout)}
    if not url.startswith("sqlite"):
        options["pool_timeout"] = int(os.getenv("DB_POOL_TIMEOUT", "10"))
    options.update(kwargs)
    engine = create_engine(url, **options)
    logger.info("Database engine created for %s", engine.url.render_as_string(hide_password=True))
    return engine


def init_schema(engine: Engine):
    with engine.begin() as conn:
        for ddl in SCHEMA:
            if engine.dialect.name == "sqlite":
                # SQLite autoincrements INTEGER PRIMARY KEY on its own
                ddl = ddl.replace(" AUTO_INCREMENT", "")
            conn.execute(text(ddl))
    logger.info("Schema ready (%d tables)", len(SCHEMA))


def table_names(engine: Engine):
    return inspect(engine).get_table_names()


def get_engine(request: Request) -> Engine:
    return request.app.state.engine
