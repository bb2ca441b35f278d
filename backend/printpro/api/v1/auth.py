"""
Router per l'autenticazione
Progetto: PrintPro (Gestionale Tipografia)

Endpoints per registrazione, login, refresh token e profilo utente.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from printpro.core.database import get_db
from printpro.core.deps import CurrentUser, get_optional_user
from printpro.models.user import User
from printpro.schemas.token import TokenRefresh, TokenResponse
from printpro.schemas.user import UserCreate, UserLogin, UserResponse, UserUpdate
from printpro.services.auth_service import AuthService, get_auth_service

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
)


async def get_service() -> AuthService:
    """Dependency per ottenere il servizio di autenticazione."""
    return get_auth_service()


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Registra un nuovo utente",
)
async def register(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_service),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """
    Registra un nuovo utente nel sistema.

    - Primo utente: diventa automaticamente admin
    - Ruolo client: registrazione libera
    - Ruoli admin/employee: richiede il token di un admin
    """
    user = await service.register(db, data, current_user=current_user)
    await db.commit()
    return user


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Effettua il login",
)
async def login(
    data: UserLogin,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_service),
):
    """
    Effettua il login e restituisce i token JWT.

    Returns:
        TokenResponse con access_token e refresh_token
    """
    return await service.login(db, data)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Aggiorna i token",
)
async def refresh(
    data: TokenRefresh,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_service),
):
    """Aggiorna i token JWT usando un refresh token."""
    return await service.refresh(db, data.refresh_token)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Ottieni il profilo utente corrente",
)
async def get_me(current_user: CurrentUser):
    """Restituisce i dati dell'utente corrente."""
    return current_user


@router.patch(
    "/me",
    response_model=UserResponse,
    summary="Aggiorna il profilo utente corrente",
)
async def update_me(
    data: UserUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_service),
):
    user = await service.update_profile(db, current_user, data)
    await db.commit()
    return user


# Export
__all__ = ["router"]
