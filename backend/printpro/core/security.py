"""
Modulo di sicurezza per autenticazione JWT
Progetto: PrintPro (Gestionale Tipografia)

Funzioni per hashing password e gestione token JWT.
"""

from datetime import datetime, timedelta, timezone
from typing import Literal

from fastapi import HTTPException, status
from jose import JWTError, jwt
from passlib.context import CryptContext

from printpro.core.config import settings
from printpro.schemas.token import TokenPayload, TokenResponse

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TokenType = Literal["access", "refresh"]


def hash_password(password: str) -> str:
    """Hasha una password in chiaro."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifica una password in chiaro contro una hashata."""
    return pwd_context.verify(plain_password, hashed_password)


def _create_token(user_id: str, role: str, token_type: TokenType, lifetime: timedelta) -> str:
    payload = {
        "sub": user_id,
        "role": role,
        "exp": datetime.now(timezone.utc) + lifetime,
        "type": token_type,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str, role: str) -> str:
    """
    Crea un token di accesso JWT.

    Args:
        user_id: ID dell'utente
        role: Ruolo dell'utente (admin, employee, client)

    Returns:
        Token JWT codificato
    """
    return _create_token(
        user_id,
        role,
        "access",
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(user_id: str, role: str) -> str:
    """Crea un token di refresh JWT."""
    return _create_token(
        user_id,
        role,
        "refresh",
        timedelta(days=settings.refresh_token_expire_days),
    )


def create_token_pair(user_id: str, role: str) -> TokenResponse:
    """Crea la coppia access/refresh restituita da login e refresh."""
    return TokenResponse(
        access_token=create_access_token(user_id, role),
        refresh_token=create_refresh_token(user_id, role),
    )


def decode_token(token: str) -> TokenPayload:
    """
    Decodifica e valida un token JWT.

    Args:
        token: Token JWT da decodificare

    Returns:
        TokenPayload con i dati del token

    Raises:
        HTTPException 401: Se il token è invalido o scaduto
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token invalido o scaduto: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token invalido: missing subject",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return TokenPayload(
        sub=payload["sub"],
        role=payload.get("role", ""),
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        type=payload.get("type", ""),
    )


__all__ = [
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_refresh_token",
    "create_token_pair",
    "decode_token",
]
