"""
Router FastAPI per i file di stampa
Progetto: PrintPro (Gestionale Tipografia)

Upload, consultazione, download, versioni, conversione e
ottimizzazione per la stampa.
"""

import logging
import uuid
from typing import Optional

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    Path,
    Query,
    UploadFile,
    status,
)
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from printpro.core.database import get_db
from printpro.core.deps import CurrentUser
from printpro.domain.files import FileStatus, FileType
from printpro.schemas.file import FileConvertRequest, FileList, FileRead
from printpro.services.file_service import file_service

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/files",
    tags=["File"],
)


def _to_read(document) -> FileRead:
    return FileRead.model_validate(document)


@router.post(
    "/",
    name="file_upload",
    summary="Carica file",
    description="Il file viene salvato e analizzato in background (metadati, validazione, anteprime).",
    response_model=FileRead,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def upload_file(
    background_tasks: BackgroundTasks,
    current_user: CurrentUser,
    file: UploadFile = File(..., description="File da caricare"),
    order_id: Optional[uuid.UUID] = Form(None, description="Ordine collegato"),
    file_type: FileType = Form(FileType.DESIGN, description="Tipo di file"),
    description: Optional[str] = Form(None, max_length=1000),
    tags: Optional[str] = Form(None, description="Etichette separate da virgola"),
    db: AsyncSession = Depends(get_db),
) -> FileRead:
    document = await file_service.upload(
        db,
        file,
        current_user,
        order_id=order_id,
        file_type=file_type,
        description=description,
        tags=[t.strip() for t in (tags or "").split(",") if t.strip()],
    )
    await db.commit()
    background_tasks.add_task(file_service.process_in_background, document.id)
    return _to_read(document)


@router.get(
    "/",
    name="file_lista",
    summary="Lista file",
    response_model=FileList,
    response_model_by_alias=True,
)
async def list_files(
    current_user: CurrentUser,
    status_filter: Optional[FileStatus] = Query(None, alias="status", description="Filtro per stato"),
    file_type: Optional[FileType] = Query(None, description="Filtro per tipo"),
    order_id: Optional[uuid.UUID] = Query(None, description="Filtro per ordine"),
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    db: AsyncSession = Depends(get_db),
) -> FileList:
    documents, total = await file_service.get_all(
        db,
        current_user,
        page=page,
        per_page=per_page,
        status=status_filter,
        file_type=file_type,
        order_id=order_id,
    )
    return FileList(
        items=[_to_read(d) for d in documents],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/{file_id}",
    name="file_dettaglio",
    summary="Dettaglio file",
    response_model=FileRead,
    response_model_by_alias=True,
)
async def get_file(
    current_user: CurrentUser,
    file_id: uuid.UUID = Path(..., description="UUID del file"),
    db: AsyncSession = Depends(get_db),
) -> FileRead:
    return _to_read(await file_service.get_for_user(db, file_id, current_user))


@router.get(
    "/{file_id}/download",
    name="file_download",
    summary="Scarica file",
    description="Scarica l'originale o una versione specifica.",
    response_class=FileResponse,
)
async def download_file(
    current_user: CurrentUser,
    file_id: uuid.UUID = Path(..., description="UUID del file"),
    version: Optional[int] = Query(None, ge=1, description="Numero di versione"),
    db: AsyncSession = Depends(get_db),
) -> FileResponse:
    path, name = await file_service.resolve_download(db, file_id, current_user, version)
    return FileResponse(path, filename=name)


@router.post(
    "/{file_id}/versions",
    name="file_nuova_versione",
    summary="Carica nuova versione",
    response_model=FileRead,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def upload_version(
    current_user: CurrentUser,
    file_id: uuid.UUID = Path(..., description="UUID del file"),
    file: UploadFile = File(..., description="Nuova versione"),
    changes: Optional[str] = Form(None, max_length=1000, description="Descrizione delle modifiche"),
    db: AsyncSession = Depends(get_db),
) -> FileRead:
    document = await file_service.upload_version(db, file_id, file, changes, current_user)
    await db.commit()
    return _to_read(document)


@router.post(
    "/{file_id}/convert",
    name="file_converti",
    summary="Converti formato",
    response_model=FileRead,
    response_model_by_alias=True,
)
async def convert_file(
    data: FileConvertRequest,
    current_user: CurrentUser,
    file_id: uuid.UUID = Path(..., description="UUID del file"),
    db: AsyncSession = Depends(get_db),
) -> FileRead:
    document = await file_service.convert(db, file_id, data.target_format, current_user)
    await db.commit()
    return _to_read(document)


@router.post(
    "/{file_id}/optimize",
    name="file_ottimizza",
    summary="Ottimizza per la stampa",
    response_model=FileRead,
    response_model_by_alias=True,
)
async def optimize_file(
    current_user: CurrentUser,
    file_id: uuid.UUID = Path(..., description="UUID del file"),
    db: AsyncSession = Depends(get_db),
) -> FileRead:
    document = await file_service.optimize_for_print(db, file_id, current_user)
    await db.commit()
    return _to_read(document)


@router.delete(
    "/{file_id}",
    name="file_elimina",
    summary="Elimina file",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_file(
    current_user: CurrentUser,
    file_id: uuid.UUID = Path(..., description="UUID del file"),
    db: AsyncSession = Depends(get_db),
) -> None:
    await file_service.delete(db, file_id, current_user)
    await db.commit()


__all__ = ["router"]
