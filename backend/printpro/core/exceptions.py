"""
Eccezioni Custom per l'applicazione.
Progetto: PrintPro (Gestionale Tipografia)

Definisce eccezioni specifiche del dominio per una gestione
centralizzata degli errori.

NOTA: BusinessValidationError è volutamente distinta da pydantic.ValidationError.
- pydantic.ValidationError: errori di formato/tipo nei dati di input (gestiti da FastAPI → 422)
- BusinessValidationError: violazioni delle regole di business logic (gestiti dal nostro handler → 422)
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "DuplicateError",
    "BusinessValidationError",
    "ValidationError",       # alias di BusinessValidationError
    "InvalidQuantityError",
    "ConflictError",
    "InvalidStateError",
    "AuthorizationError",
    "PaymentGatewayError",
]


class AppException(Exception):
    """
    Base exception per l'applicazione.

    Tutte le eccezioni custom ereditano da questa classe base.

    Attributes:
        status_code: HTTP status code da restituire al client
        error_code: Identificativo univoco dell'errore per il frontend
        detail: Messaggio di errore leggibile per l'utente
        extra: Dizionario con dati aggiuntivi per il frontend
    """

    # Default values - overridden in subclasses
    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_detail: str = "Errore interno del server"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Inizializza l'eccezione.

        Args:
            detail: Messaggio di errore dettagliato (default: quello di classe)
            error_code: Identificativo univoco (default: quello di classe)
            extra: Dati aggiuntivi da passare al frontend (default: None)
        """
        self.detail = detail if detail is not None else self.default_detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        """Rappresentazione JSON usata dall'exception handler."""
        return {
            "detail": self.detail,
            "error_code": self.error_code,
            "extra": self.extra,
        }


class NotFoundError(AppException):
    """
    Eccezione sollevata quando una risorsa non viene trovata.

    Utilizzata quando servizio, ordine, pagamento o cliente non esistono.
    """

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"
    default_detail: str = "Risorsa non trovata"


class DuplicateError(AppException):
    """
    Eccezione sollevata quando si tenta di creare una risorsa duplicata.

    Utilizzata per violazioni di vincoli unique (es. email già registrata).
    """

    status_code: int = 409
    error_code: str = "DUPLICATE_RESOURCE"
    default_detail: str = "Risorsa già esistente"


class BusinessValidationError(ValueError, AppException):
    """
    Eccezione sollevata per violazioni delle regole di business logic.

    Eredita da ValueError per essere catturata dai validatori Pydantic.

    Esempi di utilizzo:
        - "Le opzioni di tipo select devono avere dei valori"
        - "Formato di conversione non supportato"
        - "Il motivo del rimborso è obbligatorio"
    """

    status_code: int = 422
    error_code: str = "BUSINESS_VALIDATION_ERROR"
    default_detail: str = "Validazione dati fallita"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Chiama AppException.__init__ direttamente per evitare ValueError
        AppException.__init__(self, detail, error_code, extra)


# Alias per compatibilità
ValidationError = BusinessValidationError


class InvalidQuantityError(BusinessValidationError):
    """
    Quantità fuori dai limiti [min_quantity, max_quantity] del servizio.

    Sollevata prima di qualsiasi calcolo di prezzo: la quantità non viene
    mai corretta silenziosamente.
    """

    error_code: str = "INVALID_QUANTITY"
    default_detail: str = "Quantità non valida"


class ConflictError(AppException):
    """
    Eccezione sollevata per conflitti di stato.

    Utilizzata quando un'operazione non può essere eseguita
    a causa dello stato corrente della risorsa.
    """

    status_code: int = 409
    error_code: str = "CONFLICT_STATE"
    default_detail: str = "Conflitto di stato"


class InvalidStateError(ConflictError):
    """
    Operazione non consentita nello stato corrente.

    Esempi di utilizzo:
        - "Solo i pagamenti completati possono essere rimborsati"
        - "Transizione da 'delivered' a 'pending' non consentita"
    """

    error_code: str = "INVALID_STATE"
    default_detail: str = "Operazione non consentita nello stato corrente"


class AuthorizationError(AppException):
    """
    Eccezione sollevata per accesso non autorizzato.

    Utilizzata quando un utente tenta di accedere a una risorsa
    o eseguire un'operazione per cui non ha i permessi necessari.

    Esempi di utilizzo:
        - "Accesso non autorizzato a questo ordine"
        - "Solo gli amministratori possono effettuare rimborsi"
    """

    status_code: int = 403
    error_code: str = "FORBIDDEN"
    default_detail: str = "Accesso non autorizzato"


class PaymentGatewayError(AppException):
    """Errore restituito (o timeout) dal provider di mobile money."""

    status_code: int = 502
    error_code: str = "PAYMENT_GATEWAY_ERROR"
    default_detail: str = "Errore del provider di pagamento"
