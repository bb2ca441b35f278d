"""
Modelli SQLAlchemy per i file di stampa
Progetto: PrintPro (Gestionale Tipografia)

Contiene:
- FileDocument: File caricato, con metadati, validazione e anteprime
- FileVersion: Versione derivata (conversione, ottimizzazione per la stampa)
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from printpro.domain.files import FileStatus, FileType
from printpro.models import Base
from printpro.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin


class FileDocument(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Modello per i file caricati.

    Attributes:
        filename: Nome su disco (univoco)
        original_name: Nome originale inviato dal client
        mimetype: Tipo MIME dichiarato
        size: Dimensione in byte
        path: Percorso su disco
        owner_id: Utente che ha caricato il file
        order_id: Ordine collegato (opzionale)
        file_type: design, proof, final, template, other
        status: uploaded, processing, validated, rejected, converted
        file_metadata: Metadati derivati (FileMetadata)
        validation_results: Esito validazione (ValidationResult)
        preview_images: Percorsi delle anteprime
        tags: Etichette
    """

    __tablename__ = "file_documents"

    filename: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mimetype: Mapped[str] = mapped_column(String(100), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    path: Mapped[str] = mapped_column(String(500), nullable=False)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
    )

    file_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=FileType.DESIGN.value,
    )

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=FileStatus.UPLOADED.value,
    )

    file_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict,
    )

    validation_results: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    preview_images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    versions: Mapped[List["FileVersion"]] = relationship(
        "FileVersion",
        back_populates="document",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="FileVersion.version",
    )

    __table_args__ = (
        Index("ix_file_documents_owner_id", "owner_id"),
        Index("ix_file_documents_order_id", "order_id"),
        Index("ix_file_documents_status", "status"),
        CheckConstraint(
            "status IN ('uploaded', 'processing', 'validated', 'rejected', 'converted')",
            name="ck_file_documents_status",
        ),
        CheckConstraint(
            "file_type IN ('design', 'proof', 'final', 'template', 'other')",
            name="ck_file_documents_file_type",
        ),
    )

    @property
    def latest_version(self) -> int:
        """Numero dell'ultima versione (0 = solo originale)."""
        return max((v.version for v in self.versions or []), default=0)

    def __repr__(self) -> str:
        return f"<FileDocument(id={self.id}, filename={self.filename}, status={self.status})>"


class FileVersion(Base, UUIDMixin):
    """
    Versione derivata di un file. L'originale non viene mai modificato.

    Attributes:
        document_id: File di origine
        version: Numero progressivo (precedente + 1)
        filename: Nome del file derivato su disco
        path: Percorso del file derivato
        size: Dimensione in byte
        created_by_id: Utente che ha prodotto la versione
        changes: Descrizione della trasformazione
    """

    __tablename__ = "file_versions"

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("file_documents.id", ondelete="CASCADE"),
        nullable=False,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    path: Mapped[str] = mapped_column(String(500), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)

    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    changes: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    document: Mapped["FileDocument"] = relationship("FileDocument", back_populates="versions")

    __table_args__ = (
        Index("ix_file_versions_document_version", "document_id", "version", unique=True),
    )
