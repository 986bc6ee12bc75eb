"""
ksef/orm/base.py
Base model for all ORM models
"""
from datetime import datetime
from enum import Enum as PyEnum
from typing import Type

from sqlalchemy import Column, Integer, DateTime, Enum as SQLEnum
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def enum_column(enum_cls: Type[PyEnum], name: str) -> SQLEnum:
    """
    Enum column type that stores the enum *value* ("Sub-County", "Active")
    rather than the member name, so raw SQL filters and partial indexes can
    use the display strings.
    """
    return SQLEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=40,
        values_callable=lambda members: [m.value for m in members],
    )


class BaseModel(Base):
    """
    Abstract base model with common fields.
    All ORM models inherit from this.
    """
    __abstract__ = True

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        index=True
    )

    created_at = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        comment="Timestamp when record was created"
    )

    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
        comment="Timestamp when record was last updated"
    )
