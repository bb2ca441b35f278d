"""
API v1 Routes
Progetto: PrintPro (Gestionale Tipografia)

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from printpro.api.v1 import auth, files, invoices, orders, payments, services, users

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")

# Includi i router dei moduli
api_v1_router.include_router(auth.router)
api_v1_router.include_router(users.router)
api_v1_router.include_router(services.router)
api_v1_router.include_router(orders.router)
api_v1_router.include_router(payments.router)
api_v1_router.include_router(invoices.router)
api_v1_router.include_router(files.router)

# Esportazione
__all__ = ["api_v1_router"]
