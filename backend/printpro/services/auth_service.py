"""
Servizio per l'autenticazione e la gestione utenti
Progetto: PrintPro (Gestionale Tipografia)

Business logic per registrazione, login, refresh token e
amministrazione degli utenti.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from printpro.core.exceptions import AuthorizationError, DuplicateError, NotFoundError
from printpro.core.security import create_token_pair, decode_token, hash_password, verify_password
from printpro.models.user import User, UserRole
from printpro.schemas.token import TokenResponse
from printpro.schemas.user import UserCreate, UserLogin, UserUpdate

# Logger per questo modulo
logger = logging.getLogger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


class AuthService:
    """Servizio per la gestione dell'autenticazione."""

    async def register(
        self,
        db: AsyncSession,
        data: UserCreate,
        current_user: Optional[User] = None,
    ) -> User:
        """
        Registra un nuovo utente nel sistema.

        Il primo utente registrato diventa amministratore. In seguito solo
        un amministratore può creare utenti con ruolo diverso da client.

        Args:
            db: Sessione database
            data: Dati per la creazione dell'utente
            current_user: Utente autenticato che esegue la registrazione (se presente)

        Returns:
            L'utente creato

        Raises:
            DuplicateError: Se l'email è già registrata
            AuthorizationError: Ruolo privilegiato richiesto senza token admin
        """
        email = data.email.lower()
        result = await db.execute(select(User).where(User.email == email))
        if result.scalar_one_or_none():
            raise DuplicateError(f"L'email {email} è già registrata")

        count_result = await db.execute(select(func.count(User.id)))
        user_count = count_result.scalar() or 0

        role = data.role
        if user_count == 0:
            role = UserRole.ADMIN
        elif role != UserRole.CLIENT and (
            current_user is None or current_user.role != UserRole.ADMIN.value
        ):
            raise AuthorizationError(
                "Solo un amministratore può creare utenti con ruolo privilegiato"
            )

        user = User(
            email=email,
            hashed_password=hash_password(data.password),
            full_name=data.full_name,
            phone=data.phone,
            company=data.company,
            role=role.value,
        )

        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info("Registrato utente %s con ruolo %s", user.email, user.role)
        return user

    async def login(self, db: AsyncSession, data: UserLogin) -> TokenResponse:
        """
        Autentica un utente e restituisce i token JWT.

        Raises:
            HTTPException 401: Se le credenziali sono invalide o l'utente è disattivato
        """
        result = await db.execute(select(User).where(User.email == data.email.lower()))
        user = result.scalar_one_or_none()

        if not user or not verify_password(data.password, user.hashed_password):
            logger.warning("Tentativo di login fallito per %s", data.email)
            raise _unauthorized("Email o password non corretti")

        if not user.is_active:
            raise _unauthorized("Utente disattivato")

        return create_token_pair(str(user.id), user.role)

    async def refresh(self, db: AsyncSession, refresh_token: str) -> TokenResponse:
        """
        Aggiorna i token JWT usando un refresh token.

        Raises:
            HTTPException 401: Se il refresh token è invalido
        """
        token_data = decode_token(refresh_token)

        if token_data.type != "refresh":
            raise _unauthorized("Token di accesso non valido per il refresh")

        try:
            user_id = UUID(token_data.sub)
        except ValueError:
            raise _unauthorized("ID utente invalido nel token")

        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()

        if not user:
            raise _unauthorized("Utente non trovato")
        if not user.is_active:
            raise _unauthorized("Utente disattivato")

        return create_token_pair(str(user.id), user.role)

    async def get_user_by_id(self, db: AsyncSession, user_id: UUID) -> User:
        """
        Raises:
            NotFoundError: Se l'utente non esiste
        """
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()

        if not user:
            raise NotFoundError(f"Utente con ID {user_id} non trovato")

        return user

    async def update_profile(self, db: AsyncSession, user: User, data: UserUpdate) -> User:
        """Aggiorna i dati anagrafici dell'utente corrente."""
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(user, field, value)

        await db.flush()
        await db.refresh(user)
        return user

    # ------------------------------------------------------------
    # Amministrazione utenti
    # ------------------------------------------------------------
    async def list_users(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 20,
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
    ) -> tuple[list[User], int]:
        """Lista paginata degli utenti con filtri per ruolo e ricerca."""
        conditions = []
        if role is not None:
            conditions.append(User.role == role.value)
        if search:
            term = f"%{search}%"
            conditions.append(or_(
                User.email.ilike(term),
                User.full_name.ilike(term),
                User.company.ilike(term),
            ))

        query = select(User).order_by(User.created_at.desc())
        count_query = select(func.count()).select_from(User)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
        users = list(result.scalars().all())

        total = (await db.execute(count_query)).scalar() or 0
        return users, total

    async def set_active(
        self,
        db: AsyncSession,
        user_id: UUID,
        is_active: bool,
        admin: User,
    ) -> User:
        """
        Attiva o disattiva un utente.

        Raises:
            NotFoundError: Se l'utente non esiste
            AuthorizationError: Un amministratore non può disattivare sé stesso
        """
        user = await self.get_user_by_id(db, user_id)

        if user.id == admin.id and not is_active:
            raise AuthorizationError("Non puoi disattivare il tuo stesso account")

        user.is_active = is_active
        await db.flush()
        await db.refresh(user)

        logger.info(
            "Utente %s %s da %s",
            user.email, "attivato" if is_active else "disattivato", admin.email,
        )
        return user


def get_auth_service() -> AuthService:
    """Factory per ottenere un'istanza del servizio di autenticazione."""
    return AuthService()


# Export
__all__ = [
    "AuthService",
    "get_auth_service",
]
