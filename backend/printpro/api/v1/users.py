"""
Router FastAPI per l'amministrazione utenti
Progetto: PrintPro (Gestionale Tipografia)
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from printpro.core.database import get_db
from printpro.core.deps import AdminUser
from printpro.models.user import UserRole
from printpro.schemas.user import UserList, UserResponse, UserStatusUpdate
from printpro.services.auth_service import AuthService, get_auth_service

router = APIRouter(
    prefix="/users",
    tags=["Utenti"],
)


@router.get(
    "/",
    name="utenti_lista",
    summary="Lista utenti",
    response_model=UserList,
    status_code=status.HTTP_200_OK,
)
async def list_users(
    admin: AdminUser,
    role: Optional[UserRole] = Query(None, description="Filtro per ruolo"),
    search: Optional[str] = Query(None, description="Ricerca su email, nome, azienda"),
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> UserList:
    users, total = await service.list_users(db, page=page, per_page=per_page, role=role, search=search)
    return UserList(
        items=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/{user_id}",
    name="utente_dettaglio",
    summary="Dettaglio utente",
    response_model=UserResponse,
)
async def get_user(
    admin: AdminUser,
    user_id: uuid.UUID = Path(..., description="UUID dell'utente"),
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    return UserResponse.model_validate(await service.get_user_by_id(db, user_id))


@router.patch(
    "/{user_id}/status",
    name="utente_stato",
    summary="Attiva o disattiva un utente",
    response_model=UserResponse,
)
async def set_user_status(
    data: UserStatusUpdate,
    admin: AdminUser,
    user_id: uuid.UUID = Path(..., description="UUID dell'utente"),
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    user = await service.set_active(db, user_id, data.is_active, admin)
    await db.commit()
    return UserResponse.model_validate(user)


__all__ = ["router"]
