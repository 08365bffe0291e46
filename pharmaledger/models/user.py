from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from pharmaledger.db.base import Base


class User(Base):
    """
    Operator (actor) who records purchases and sales.
    Rows are owned by the auth collaborator; the ledger only checks existence.
    """
    __tablename__ = "users"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(191), unique=True,
                   nullable=False)  # <= 191, no index=True

    # admin / seller
    role = Column(String(20), nullable=False, default="seller")
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
