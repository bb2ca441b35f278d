"""
API Routes
Progetto: PrintPro (Gestionale Tipografia)

Modulo per l'aggregazione dei router versionati.
"""

from printpro.api.v1 import api_v1_router

# Esportazione router
__all__ = ["api_v1_router"]
