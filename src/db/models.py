"""Contact models and query helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Column, Integer, String, select
from sqlalchemy.orm import DeclarativeBase, Session

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 100


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class CustomerModel(Base):
    """A contact. Schema is owned by migrations/001_customers.sql."""

    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    name = Column(String(NAME_MAX_LENGTH), nullable=False)


@dataclass
class Customer:
    id: int
    name: str


def validate_name(name: str | None) -> str:
    """Return the trimmed name, or raise ValueError with a user-facing message."""
    value = (name or "").strip()
    if not value:
        raise ValueError("The Name field is required.")
    if len(value) > NAME_MAX_LENGTH:
        raise ValueError(f"The field Name must be a string with a maximum length of {NAME_MAX_LENGTH}.")
    return value


class CustomerRepository:
    """Database operations for customers."""

    def __init__(self, session: Session):
        self.session = session

    def get_all(self) -> list[Customer]:
        rows = self.session.scalars(select(CustomerModel).order_by(CustomerModel.id))
        return [Customer(id=row.id, name=row.name) for row in rows]

    def get(self, customer_id: int) -> Customer | None:
        row = self.session.get(CustomerModel, customer_id)
        if row is None:
            return None
        return Customer(id=row.id, name=row.name)

    def create(self, name: str) -> int:
        row = CustomerModel(name=validate_name(name))
        self.session.add(row)
        self.session.flush()
        logger.info("Created customer %d", row.id)
        return row.id

    def update(self, customer_id: int, name: str) -> bool:
        """Rename a customer. Returns False if it does not exist."""
        row = self.session.get(CustomerModel, customer_id)
        if row is None:
            return False
        row.name = validate_name(name)
        return True

    def delete(self, customer_id: int) -> bool:
        """Delete a customer. Returns False if it did not exist."""
        row = self.session.get(CustomerModel, customer_id)
        if row is None:
            return False
        self.session.delete(row)
        logger.info("Deleted customer %d", customer_id)
        return True
