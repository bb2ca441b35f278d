"""
Schemas Pydantic per il progetto PrintPro

Questo modulo contiene tutti gli schemi Pydantic utilizzati per la validazione
e serializzazione delle richieste e risposte API.
"""

# Import degli schemi per renderli disponibili tramite import diretto
# es: from printpro.schemas import OrderRead, PaymentRead, etc.

from printpro.schemas.common import PaginatedList, PeriodCount
from printpro.schemas.token import TokenPayload, TokenRefresh, TokenResponse
from printpro.schemas.user import (
    UserCreate,
    UserList,
    UserLogin,
    UserResponse,
    UserStatusUpdate,
    UserUpdate,
)
from printpro.schemas.service import (
    CategoryStats,
    PriceCalculationRequest,
    PriceCalculationResponse,
    ServiceCreate,
    ServiceList,
    ServiceOption,
    ServiceRead,
    ServiceUpdate,
)
from printpro.schemas.order import (
    OrderCreate,
    OrderDocumentResponse,
    OrderItemCreate,
    OrderItemRead,
    OrderList,
    OrderRead,
    OrderStats,
    OrderUpdate,
)
from printpro.schemas.payment import (
    FinancialReport,
    PaymentCreate,
    PaymentList,
    PaymentRead,
    PaymentStats,
    PaymentStatusUpdate,
    RefundCreate,
)
from printpro.schemas.invoice import (
    DiscountSpec,
    InvoiceCreate,
    InvoiceFromOrder,
    InvoiceList,
    InvoiceMarkPaid,
    InvoiceRead,
    InvoiceStats,
    InvoiceUpdate,
)
from printpro.schemas.file import FileConvertRequest, FileList, FileRead, FileVersionRead

__all__ = [
    "PaginatedList",
    "PeriodCount",
    "TokenPayload",
    "TokenRefresh",
    "TokenResponse",
    "UserCreate",
    "UserList",
    "UserLogin",
    "UserResponse",
    "UserStatusUpdate",
    "UserUpdate",
    "CategoryStats",
    "PriceCalculationRequest",
    "PriceCalculationResponse",
    "ServiceCreate",
    "ServiceList",
    "ServiceOption",
    "ServiceRead",
    "ServiceUpdate",
    "OrderCreate",
    "OrderDocumentResponse",
    "OrderItemCreate",
    "OrderItemRead",
    "OrderList",
    "OrderRead",
    "OrderStats",
    "OrderUpdate",
    "FinancialReport",
    "PaymentCreate",
    "PaymentList",
    "PaymentRead",
    "PaymentStats",
    "PaymentStatusUpdate",
    "RefundCreate",
    "DiscountSpec",
    "InvoiceCreate",
    "InvoiceFromOrder",
    "InvoiceList",
    "InvoiceMarkPaid",
    "InvoiceRead",
    "InvoiceStats",
    "InvoiceUpdate",
    "FileConvertRequest",
    "FileList",
    "FileRead",
    "FileVersionRead",
]
