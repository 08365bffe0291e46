# pharmaledger/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """All ledger and reference-data tables inherit from this."""
    pass


# Import all models so metadata is complete for create_all()
from pharmaledger.models import (  # noqa: F401,E402
    user,
    reference,
    product,
    ledger,
)
