"""Base factory configuration for polyfactory."""

from uuid import uuid4

from polyfactory.factories.sqlalchemy_factory import SQLAlchemyFactory

from src.shepherd.models.base import utc_now


def generate_uuid():
    return uuid4()


def short_suffix() -> str:
    return uuid4().hex[-8:]


class BaseFactory(SQLAlchemyFactory):
    """Base factory for the SQLModel tables.

    Foreign keys are never generated; tests pass ``tenant_id`` and friends
    explicitly so every row lands in the tenant the test intends.
    """

    __is_base_factory__ = True
    __set_relationships__ = False
    __set_foreign_keys__ = False


__all__ = ["BaseFactory", "generate_uuid", "short_suffix", "utc_now"]
