# pharmaledger/models/__init__.py
from .user import User
from .reference import Category, Supplier
from .product import Product
from .ledger import PurchaseEvent, SaleEvent

__all__ = [
    "User",
    "Category",
    "Supplier",
    "Product",
    "PurchaseEvent",
    "SaleEvent",
]
