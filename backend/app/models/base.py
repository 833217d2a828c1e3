import uuid

from sqlalchemy.orm import DeclarativeBase


def new_id() -> str:
    """Opaque primary key for marketplace records."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass
