"""
Service Layer per i file di stampa
Progetto: PrintPro (Gestionale Tipografia)

Definisce la logica applicativa dei file caricati:
- Upload con limite di dimensione
- Elaborazione in background (metadati, validazione, anteprime)
- Conversione e ottimizzazione per la stampa come nuove versioni
- Controllo di accesso (proprietario o staff) e cancellazione logica
"""

import asyncio
import logging
import mimetypes
import os
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import UploadFile
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from printpro.core.config import settings
from printpro.core.database import AsyncSessionLocal
from printpro.core.exceptions import (
    AuthorizationError,
    BusinessValidationError,
    NotFoundError,
)
from printpro.domain.files import FileStatus, FileType, ValidationResult
from printpro.models import FileDocument, FileVersion, Order, User
from printpro.services import file_processor

# Logger per questo modulo
logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _extension(name: str) -> str:
    return os.path.splitext(name)[1].lower()


def _write_file(path: str, content: bytes) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(content)


class FileService:
    """
    Service per la gestione dei file caricati.

    L'elaborazione in background apre una propria sessione (la richiesta
    che ha eseguito l'upload è già conclusa) ed è limitata da un semaforo
    di file_processing_concurrency elaborazioni simultanee.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
        upload_path: Optional[str] = None,
    ) -> None:
        self.session_factory = session_factory
        self._upload_path = upload_path
        self._semaphore: Optional[asyncio.Semaphore] = None

    @property
    def upload_path(self) -> str:
        return self._upload_path or settings.upload_path

    @property
    def semaphore(self) -> asyncio.Semaphore:
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(settings.file_processing_concurrency)
        return self._semaphore

    def _dir(self, name: str) -> str:
        return os.path.join(self.upload_path, name)

    # ------------------------------------------------------------
    # Lettura e accesso
    # ------------------------------------------------------------
    async def get_by_id(self, db: AsyncSession, file_id: uuid.UUID) -> FileDocument:
        """
        Raises:
            NotFoundError: File inesistente o eliminato
        """
        result = await db.execute(
            select(FileDocument).where(
                FileDocument.id == file_id,
                FileDocument.is_active == True,  # noqa: E712
            )
        )
        document = result.scalar_one_or_none()
        if document is None:
            raise NotFoundError(f"File con ID {file_id} non trovato")
        return document

    async def get_for_user(self, db: AsyncSession, file_id: uuid.UUID, user: User) -> FileDocument:
        """
        Raises:
            AuthorizationError: Utente né proprietario né staff
        """
        document = await self.get_by_id(db, file_id)
        if not user.is_staff and document.owner_id != user.id:
            raise AuthorizationError("Accesso non autorizzato a questo file")
        return document

    async def get_all(
        self,
        db: AsyncSession,
        user: User,
        page: int = 1,
        per_page: int = 20,
        status: Optional[FileStatus] = None,
        file_type: Optional[FileType] = None,
        order_id: Optional[uuid.UUID] = None,
    ) -> tuple[list[FileDocument], int]:
        """Lista paginata; i clienti vedono solo i propri file."""
        conditions = [FileDocument.is_active == True]  # noqa: E712
        if not user.is_staff:
            conditions.append(FileDocument.owner_id == user.id)
        if status is not None:
            conditions.append(FileDocument.status == status.value)
        if file_type is not None:
            conditions.append(FileDocument.file_type == file_type.value)
        if order_id is not None:
            conditions.append(FileDocument.order_id == order_id)

        query = (
            select(FileDocument)
            .where(*conditions)
            .order_by(FileDocument.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        documents = list((await db.execute(query)).scalars().all())
        total = (await db.execute(
            select(func.count(FileDocument.id)).where(*conditions)
        )).scalar() or 0
        return documents, total

    # ------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------
    async def _read_limited(self, upload: UploadFile) -> bytes:
        """
        Legge il contenuto a blocchi rispettando max_file_size.

        Raises:
            BusinessValidationError: File oltre il limite
        """
        chunks = []
        size = 0
        while True:
            chunk = await upload.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > settings.max_file_size:
                raise BusinessValidationError(
                    f"File troppo grande: limite {settings.max_file_size} byte",
                    extra={"max_file_size": settings.max_file_size},
                )
            chunks.append(chunk)
        return b"".join(chunks)

    async def _store(self, upload: UploadFile, directory: str) -> tuple[str, str, int]:
        """Salva l'upload con un nome univoco. Ritorna (filename, path, size)."""
        content = await self._read_limited(upload)
        if not content:
            raise BusinessValidationError("Il file caricato è vuoto")

        filename = f"{uuid.uuid4().hex}{_extension(upload.filename or '')}"
        path = os.path.join(directory, filename)
        await asyncio.to_thread(_write_file, path, content)
        return filename, path, len(content)

    async def upload(
        self,
        db: AsyncSession,
        upload: UploadFile,
        owner: User,
        order_id: Optional[uuid.UUID] = None,
        file_type: FileType = FileType.DESIGN,
        description: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> FileDocument:
        """
        Salva il file e crea il documento in stato 'uploaded'.

        L'elaborazione va avviata dal chiamante con process_in_background.

        Raises:
            BusinessValidationError: File vuoto o oltre il limite
            NotFoundError: Ordine inesistente
            AuthorizationError: Ordine di un altro cliente
        """
        if order_id is not None:
            order = (await db.execute(select(Order).where(Order.id == order_id))).scalar_one_or_none()
            if order is None:
                raise NotFoundError(f"Ordine con ID {order_id} non trovato")
            if not owner.is_staff and order.client_id != owner.id:
                raise AuthorizationError("Non puoi allegare file a un ordine di un altro cliente")

        original_name = os.path.basename(upload.filename or "file")
        filename, path, size = await self._store(upload, self._dir("files"))

        document = FileDocument(
            filename=filename,
            original_name=original_name,
            mimetype=(
                upload.content_type
                or mimetypes.guess_type(original_name)[0]
                or "application/octet-stream"
            ),
            size=size,
            path=path,
            owner_id=owner.id,
            order_id=order_id,
            file_type=file_type.value,
            status=FileStatus.UPLOADED.value,
            file_metadata={},
            preview_images=[],
            tags=tags or [],
            description=description,
        )
        db.add(document)
        await db.flush()
        await db.refresh(document)

        logger.info("Caricato file %s (%s, %s byte) da %s", original_name, filename, size, owner.email)
        return document

    # ------------------------------------------------------------
    # Elaborazione in background
    # ------------------------------------------------------------
    async def process_in_background(self, file_id: uuid.UUID) -> None:
        """
        Elabora un file caricato.

        Ogni errore (anche il timeout) porta il file in stato 'rejected'
        con un unico problema di gravità alta; nulla viene propagato.
        """
        async with self.semaphore:
            async with self.session_factory() as db:
                document = (await db.execute(
                    select(FileDocument).where(FileDocument.id == file_id)
                )).scalar_one_or_none()
                if document is None:
                    logger.warning("File da elaborare non trovato: %s", file_id)
                    return

                document.status = FileStatus.PROCESSING.value
                await db.commit()

                try:
                    outcome = await asyncio.wait_for(
                        asyncio.to_thread(
                            file_processor.process_file,
                            document.path,
                            _extension(document.original_name),
                            self._dir("previews"),
                        ),
                        timeout=settings.file_processing_timeout_seconds,
                    )
                except Exception as e:
                    logger.error("Elaborazione del file %s fallita: %s", file_id, e, exc_info=True)
                    message = (
                        "Tempo massimo di elaborazione superato"
                        if isinstance(e, asyncio.TimeoutError)
                        else "Errore durante l'elaborazione del file"
                    )
                    document.status = FileStatus.REJECTED.value
                    document.validation_results = ValidationResult.failure(message).model_dump(mode="json")
                    await db.commit()
                    return

                document.file_metadata = outcome.metadata.model_dump(mode="json", exclude_none=True)
                document.validation_results = outcome.validation.model_dump(mode="json")
                document.preview_images = outcome.previews
                document.status = (
                    FileStatus.VALIDATED.value
                    if outcome.validation.is_valid
                    else FileStatus.REJECTED.value
                )
                await db.commit()

                logger.info("Elaborato file %s: %s", document.filename, document.status)

    # ------------------------------------------------------------
    # Versioni
    # ------------------------------------------------------------
    def _add_version(
        self,
        document: FileDocument,
        filename: str,
        path: str,
        user: User,
        changes: str,
    ) -> FileVersion:
        version = FileVersion(
            version=document.latest_version + 1,
            filename=filename,
            path=path,
            size=os.path.getsize(path),
            created_by_id=user.id,
            changes=changes,
            created_at=_utcnow(),
        )
        document.versions.append(version)
        return version

    async def convert(
        self,
        db: AsyncSession,
        file_id: uuid.UUID,
        target_format: str,
        user: User,
    ) -> FileDocument:
        """
        Converte un'immagine e registra il risultato come nuova versione.

        Raises:
            BusinessValidationError: File non immagine
        """
        document = await self.get_for_user(db, file_id, user)
        output = await asyncio.to_thread(
            file_processor.convert_image,
            document.path,
            _extension(document.original_name),
            target_format,
            self._dir("conversions"),
        )
        stem = os.path.splitext(document.original_name)[0]
        version = self._add_version(
            document,
            f"{stem}_v{document.latest_version + 1}.{target_format}",
            output,
            user,
            f"Conversione in {target_format}",
        )
        document.status = FileStatus.CONVERTED.value

        await db.flush()
        await db.refresh(document)
        logger.info("File %s convertito in %s (versione %s)", document.filename, target_format, version.version)
        return document

    async def optimize_for_print(self, db: AsyncSession, file_id: uuid.UUID, user: User) -> FileDocument:
        """
        Crea una versione JPEG ottimizzata per la stampa.

        Raises:
            BusinessValidationError: File non immagine
        """
        document = await self.get_for_user(db, file_id, user)
        output = await asyncio.to_thread(
            file_processor.optimize_for_print,
            document.path,
            _extension(document.original_name),
            self._dir("conversions"),
        )
        stem = os.path.splitext(document.original_name)[0]
        version = self._add_version(
            document,
            f"{stem}_print_optimized.jpg",
            output,
            user,
            "Ottimizzazione per la stampa",
        )

        await db.flush()
        await db.refresh(document)
        logger.info("File %s ottimizzato per la stampa (versione %s)", document.filename, version.version)
        return document

    async def upload_version(
        self,
        db: AsyncSession,
        file_id: uuid.UUID,
        upload: UploadFile,
        changes: Optional[str],
        user: User,
    ) -> FileDocument:
        """Carica manualmente una nuova versione del file."""
        document = await self.get_for_user(db, file_id, user)
        filename, path, _ = await self._store(upload, self._dir("versions"))
        number = document.latest_version + 1
        self._add_version(
            document,
            os.path.basename(upload.filename or filename),
            path,
            user,
            changes or f"Versione {number}",
        )

        await db.flush()
        await db.refresh(document)
        return document

    async def resolve_download(
        self,
        db: AsyncSession,
        file_id: uuid.UUID,
        user: User,
        version: Optional[int] = None,
    ) -> tuple[str, str]:
        """
        Percorso e nome di download dell'originale o di una versione.

        Raises:
            NotFoundError: Versione inesistente o file mancante su disco
        """
        document = await self.get_for_user(db, file_id, user)
        path, name = document.path, document.original_name
        if version is not None:
            match = next((v for v in document.versions if v.version == version), None)
            if match is None:
                raise NotFoundError(f"Versione {version} non trovata")
            path, name = match.path, match.filename

        if not os.path.exists(path):
            logger.error("File mancante su disco: %s", path)
            raise NotFoundError("File non disponibile")
        return path, name

    async def delete(self, db: AsyncSession, file_id: uuid.UUID, user: User) -> None:
        """Cancellazione logica (i file su disco restano)."""
        document = await self.get_for_user(db, file_id, user)
        document.is_active = False
        await db.flush()
        logger.info("Eliminato file %s da %s", document.filename, user.email)


file_service = FileService()

__all__ = ["FileService", "file_service"]
