"""Pytest configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from sqlmarshal.schema.models import ColumnDescriptor
from sqlmarshal.schema.types import SqlType


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    """URL of an empty SQLite database file."""
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def sqlite_engine(sqlite_url: str) -> Iterator[Engine]:
    """Engine over a SQLite database holding an 'orders' table."""
    engine = create_engine(sqlite_url)
    with engine.begin() as conn:
        conn.execute(
            text(
                """
                CREATE TABLE orders (
                    id INTEGER NOT NULL PRIMARY KEY,
                    customer VARCHAR(50) NOT NULL,
                    amount FLOAT,
                    quantity INTEGER,
                    shipped DATE,
                    active BOOLEAN,
                    payload BLOB
                )
                """
            )
        )
    yield engine
    engine.dispose()


@pytest.fixture
def seeded_engine(sqlite_engine: Engine) -> Engine:
    """The 'orders' table with three rows."""
    with sqlite_engine.begin() as conn:
        conn.execute(
            text(
                "INSERT INTO orders (id, customer, amount, quantity, shipped, active, payload) "
                "VALUES (:id, :customer, :amount, :quantity, :shipped, :active, :payload)"
            ),
            [
                {
                    "id": 1,
                    "customer": "acme",
                    "amount": 10.5,
                    "quantity": 2,
                    "shipped": "2024-03-01",
                    "active": 1,
                    "payload": b"\x01\x02",
                },
                {
                    "id": 2,
                    "customer": "globex",
                    "amount": None,
                    "quantity": None,
                    "shipped": None,
                    "active": 0,
                    "payload": None,
                },
                {
                    "id": 3,
                    "customer": "initech",
                    "amount": 7.25,
                    "quantity": 1,
                    "shipped": "2024-03-05",
                    "active": 1,
                    "payload": None,
                },
            ],
        )
    return sqlite_engine


@pytest.fixture
def column():
    """Factory for column descriptors."""

    def make(
        name: str = "col",
        type_code: int = SqlType.VARCHAR,
        type_name: str = "",
        precision: int = 0,
        scale: int = 0,
        nullable: bool = True,
        signed: bool = True,
        value_class: type | None = None,
    ) -> ColumnDescriptor:
        return ColumnDescriptor(
            name=name,
            type_code=type_code,
            type_name=type_name,
            precision=precision,
            scale=scale,
            nullable=nullable,
            signed=signed,
            value_class=value_class,
        )

    return make
