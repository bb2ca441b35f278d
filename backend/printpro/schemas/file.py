"""
Schemas Pydantic per i file di stampa
Progetto: PrintPro (Gestionale Tipografia)
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from printpro.domain.files import (
    CONVERSION_FORMATS,
    FileMetadata,
    FileStatus,
    FileType,
    ValidationResult,
)
from printpro.schemas.common import PaginatedList


class FileVersionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    version: int
    filename: str
    size: int
    created_by_id: UUID
    changes: str
    created_at: datetime


class FileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    filename: str
    original_name: str
    mimetype: str
    size: int
    owner_id: UUID
    order_id: Optional[UUID] = None
    file_type: FileType
    status: FileStatus
    file_metadata: FileMetadata = Field(default_factory=FileMetadata, serialization_alias="metadata")
    validation_results: Optional[ValidationResult] = None
    preview_images: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    description: Optional[str] = None
    versions: list[FileVersionRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class FileList(PaginatedList):
    items: list[FileRead] = Field(default_factory=list)


class FileConvertRequest(BaseModel):
    """Conversione in un altro formato raster."""

    target_format: str = Field(..., description="jpg, jpeg, png, webp, tiff")

    @field_validator("target_format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        v = v.lower().lstrip(".")
        if v not in CONVERSION_FORMATS:
            raise ValueError(
                f"Formato non supportato: {v}. Ammessi: {', '.join(sorted(CONVERSION_FORMATS))}"
            )
        return v


__all__ = [
    "FileVersionRead",
    "FileRead",
    "FileList",
    "FileConvertRequest",
]
