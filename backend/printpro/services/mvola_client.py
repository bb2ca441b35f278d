"""
Client HTTP per il provider di mobile money MVola
Progetto: PrintPro (Gestionale Tipografia)

Avvio pagamenti, verifica stato, rimborsi e saldo merchant.

Ogni richiesta firmata include il campo 'signature':
    sha256( "k1=v1&k2=v2&..." (chiavi ordinate) + secret_key )
La stessa firma viene verificata sui callback ricevuti dal provider.
"""

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Optional

import httpx

from printpro.core.config import settings
from printpro.core.exceptions import PaymentGatewayError

# Logger per questo modulo
logger = logging.getLogger(__name__)

INITIATE_PATH = "/api/v1/payments/initiate"
STATUS_PATH = "/api/v1/payments/{transaction_id}/status"
REFUND_PATH = "/api/v1/payments/refund"
BALANCE_PATH = "/api/v1/merchant/balance"

# Operazioni di sola lettura hanno un timeout più breve
READ_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class MVolaTransaction:
    """Risposta del provider per avvio o verifica di un pagamento."""

    transaction_id: str
    status: str
    message: Optional[str] = None


def _signature_value(value: Any) -> str:
    """
    Rappresentazione testuale di un valore nella stringa da firmare.

    Gli importi interi vengono scritti senza decimali (25000, non 25000.00).
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (Decimal, float)):
        if value == int(value):
            return str(int(value))
        return format(Decimal(str(value)).normalize(), "f")
    return str(value)


def _json_amount(amount: Decimal) -> Any:
    return int(amount) if amount == int(amount) else float(amount)


class MVolaClient:
    """
    Client asincrono per le API MVola.

    Args:
        base_url: URL base delle API
        merchant_id: Identificativo merchant
        secret_key: Chiave condivisa (Bearer e firma)
        callback_url: URL di notifica registrato sulle transazioni
        timeout: Timeout per avvio pagamento e rimborso (secondi)
        transport: Transport httpx alternativo (test)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        merchant_id: Optional[str] = None,
        secret_key: Optional[str] = None,
        callback_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url or settings.mvola_base_url
        self.merchant_id = merchant_id if merchant_id is not None else settings.mvola_merchant_id
        self.secret_key = secret_key if secret_key is not None else settings.mvola_secret_key
        self.callback_url = callback_url if callback_url is not None else settings.mvola_callback_url
        self.timeout = timeout or settings.mvola_timeout_seconds
        self._transport = transport

    # ------------------------------------------------------------
    # Firma
    # ------------------------------------------------------------
    def generate_signature(self, data: Mapping[str, Any]) -> str:
        """SHA-256 esadecimale delle coppie chiave=valore ordinate più il segreto."""
        payload = "&".join(
            f"{key}={_signature_value(data[key])}" for key in sorted(data)
        )
        return hashlib.sha256((payload + self.secret_key).encode("utf-8")).hexdigest()

    def verify_signature(self, payload: Mapping[str, Any]) -> bool:
        """
        Verifica la firma di un callback.

        La firma è calcolata su tutti i campi tranne 'signature'.
        """
        received = payload.get("signature")
        if not isinstance(received, str) or not received:
            return False
        data = {k: v for k, v in payload.items() if k != "signature"}
        return hmac.compare_digest(received, self.generate_signature(data))

    def _signed(self, data: dict[str, Any]) -> dict[str, Any]:
        return {**data, "signature": self.generate_signature(data)}

    # ------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------
    async def _request(
        self,
        method: str,
        path: str,
        timeout: float,
        json: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=httpx.Timeout(timeout),
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=json)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            logger.error(
                "Errore MVola %s %s: HTTP %s - %s",
                method, path, e.response.status_code, message,
            )
            raise PaymentGatewayError(
                f"Errore MVola: {message}",
                extra={"status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            logger.error("Errore di comunicazione con MVola %s %s: %s", method, path, e)
            raise PaymentGatewayError(f"Errore MVola: {e}") from e
        except ValueError as e:
            logger.error("Risposta MVola non valida per %s %s: %s", method, path, e)
            raise PaymentGatewayError("Risposta MVola non valida") from e

    @staticmethod
    def _timestamp() -> int:
        return int(time.time() * 1000)

    # ------------------------------------------------------------
    # Operazioni
    # ------------------------------------------------------------
    async def initiate_payment(
        self,
        amount: Decimal,
        phone_number: str,
        reference: str,
        description: Optional[str] = None,
    ) -> MVolaTransaction:
        """
        Avvia un pagamento MVola.

        Raises:
            PaymentGatewayError: Errore HTTP, timeout o risposta non valida
        """
        data = self._signed({
            "merchantId": self.merchant_id,
            "amount": _json_amount(amount),
            "phoneNumber": phone_number,
            "reference": reference,
            "description": description or "Paiement PrintPro",
            "callbackUrl": self.callback_url,
            "timestamp": self._timestamp(),
        })
        body = await self._request("POST", INITIATE_PATH, self.timeout, json=data)
        logger.info("Pagamento MVola avviato: %s (%s)", body.get("transactionId"), reference)
        return _transaction(body)

    async def check_status(self, transaction_id: str) -> MVolaTransaction:
        """Stato corrente di una transazione."""
        body = await self._request(
            "GET",
            STATUS_PATH.format(transaction_id=transaction_id),
            READ_TIMEOUT_SECONDS,
        )
        return _transaction(body)

    async def refund(self, transaction_id: str, amount: Decimal, reason: str) -> dict[str, Any]:
        """
        Richiede il rimborso (anche parziale) di una transazione.

        Returns:
            Risposta del provider (contiene refundId quando disponibile)
        """
        data = self._signed({
            "merchantId": self.merchant_id,
            "transactionId": transaction_id,
            "amount": _json_amount(amount),
            "reason": reason,
            "timestamp": self._timestamp(),
        })
        body = await self._request("POST", REFUND_PATH, self.timeout, json=data)
        logger.info("Rimborso MVola avviato per %s: %s", transaction_id, amount)
        return body

    async def get_balance(self) -> dict[str, Any]:
        """Saldo del conto merchant: {'balance': ..., 'currency': ...}."""
        body = await self._request("GET", BALANCE_PATH, READ_TIMEOUT_SECONDS)
        return {"balance": body.get("balance"), "currency": body.get("currency")}


def _transaction(body: Mapping[str, Any]) -> MVolaTransaction:
    transaction_id = body.get("transactionId")
    if not transaction_id:
        raise PaymentGatewayError("Risposta MVola senza transactionId")
    return MVolaTransaction(
        transaction_id=str(transaction_id),
        status=str(body.get("status") or ""),
        message=body.get("message"),
    )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase


def get_mvola_client() -> MVolaClient:
    """Factory usata come dependency FastAPI."""
    return MVolaClient()


__all__ = ["MVolaClient", "MVolaTransaction", "get_mvola_client"]
