# pharmaledger/api/router.py
from fastapi import APIRouter
from pharmaledger.api import (
    routes_ledger,
    routes_dashboard,
)

api_router = APIRouter()

api_router.include_router(routes_ledger.router)
api_router.include_router(routes_dashboard.router)
