"""
Declarative base shared by every ORM model.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    # Models keep plain ``Column`` attributes with bare type annotations.
    __allow_unmapped__ = True
