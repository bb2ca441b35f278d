"""
Classificazione e validazione dei file di stampa
Progetto: PrintPro (Gestionale Tipografia)

Regole pure applicate alle proprietà già estratte da un file (vedi
services/file_processor.py per la lettura con Pillow).
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field, computed_field

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".tif"})
DOCUMENT_EXTENSIONS = frozenset({".pdf", ".ai", ".eps", ".psd", ".indd"})
VECTOR_EXTENSIONS = frozenset({".svg", ".ai", ".eps"})
SUPPORTED_EXTENSIONS = IMAGE_EXTENSIONS | DOCUMENT_EXTENSIONS | VECTOR_EXTENSIONS

CONVERSION_FORMATS = frozenset({"jpg", "jpeg", "png", "webp", "tiff"})

LARGE_FILE_BYTES = 100 * 1024 * 1024
MIN_PRINT_DPI = 150
MIN_SIDE_PX = 300
DEFAULT_DPI = 72


class FileStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    VALIDATED = "validated"
    REJECTED = "rejected"
    CONVERTED = "converted"


class FileType(str, Enum):
    DESIGN = "design"
    PROOF = "proof"
    FINAL = "final"
    TEMPLATE = "template"
    OTHER = "other"


class PrintQuality(str, Enum):
    PRINT_READY = "print-ready"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ColorMode(str, Enum):
    CMYK = "CMYK"
    RGB = "RGB"
    GRAYSCALE = "Grayscale"


def print_quality_for(dpi: float) -> PrintQuality:
    """≥300 print-ready, ≥150 high, ≥72 medium, altrimenti low."""
    if dpi >= 300:
        return PrintQuality.PRINT_READY
    if dpi >= 150:
        return PrintQuality.HIGH
    if dpi >= 72:
        return PrintQuality.MEDIUM
    return PrintQuality.LOW


def color_mode_for(mode: str, bands: int) -> ColorMode:
    """
    Modo colore dedotto dall'immagine.

    CMYK solo se il modo dichiarato è CMYK (un PNG RGBA ha 4 canali ma non
    è CMYK); 1-2 canali sono scala di grigi; il resto è RGB.
    """
    if mode.upper() == "CMYK":
        return ColorMode.CMYK
    if bands <= 2:
        return ColorMode.GRAYSCALE
    return ColorMode.RGB


def is_image_extension(extension: str) -> bool:
    return extension.lower() in IMAGE_EXTENSIONS


# ------------------------------------------------------------
# Metadati e risultato di validazione (salvati come JSON)
# ------------------------------------------------------------
class Dimensions(BaseModel):
    width: int
    height: int


class FileMetadata(BaseModel):
    """Metadati derivati dal file."""

    dimensions: Optional[Dimensions] = None
    resolution: Optional[int] = None
    color_mode: Optional[ColorMode] = None
    file_format: Optional[str] = None
    print_quality: Optional[PrintQuality] = None
    pages: Optional[int] = None


class ValidationIssue(BaseModel):
    type: Literal["warning", "error"]
    message: str
    severity: Literal["low", "medium", "high"]


class ValidationResult(BaseModel):
    """Esito della validazione: valido se e solo se non ci sono errori."""

    issues: list[ValidationIssue] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def is_valid(self) -> bool:
        return not any(issue.type == "error" for issue in self.issues)

    @classmethod
    def failure(cls, message: str) -> "ValidationResult":
        """Risultato usato quando l'elaborazione stessa fallisce."""
        return cls(issues=[ValidationIssue(type="error", message=message, severity="high")])


def image_metadata(
    width: int,
    height: int,
    dpi: Optional[float],
    mode: str,
    bands: int,
    file_format: Optional[str],
) -> FileMetadata:
    """Metadati per un file immagine; DPI assente vale 72."""
    resolution = int(round(dpi)) if dpi else DEFAULT_DPI
    return FileMetadata(
        dimensions=Dimensions(width=width, height=height),
        resolution=resolution,
        color_mode=color_mode_for(mode, bands),
        file_format=(file_format or "").lower() or None,
        print_quality=print_quality_for(resolution),
    )


def pdf_metadata(pages: int = 1) -> FileMetadata:
    return FileMetadata(pages=pages, file_format="PDF", print_quality=PrintQuality.HIGH)


def validate_properties(
    extension: str,
    size_bytes: int,
    width: Optional[int] = None,
    height: Optional[int] = None,
    dpi: Optional[float] = None,
    color_space_rgb: bool = False,
) -> ValidationResult:
    """
    Valida le proprietà di un file caricato.

    Args:
        extension: Estensione con il punto (es. '.png')
        size_bytes: Dimensione su disco
        width, height: Dimensioni in pixel (solo immagini)
        dpi: Risoluzione dichiarata (solo immagini, None se assente)
        color_space_rgb: True se l'immagine è in uno spazio RGB

    Returns:
        ValidationResult con issues e raccomandazioni
    """
    result = ValidationResult()

    if size_bytes > LARGE_FILE_BYTES:
        result.issues.append(ValidationIssue(
            type="warning", message="File molto grande (>100MB)", severity="medium",
        ))
        result.recommendations.append("Valuta di comprimere il file per ridurne la dimensione")

    if dpi and dpi < MIN_PRINT_DPI:
        result.issues.append(ValidationIssue(
            type="warning", message=f"Risoluzione bassa: {int(round(dpi))} DPI", severity="high",
        ))
        result.recommendations.append("Usa una risoluzione di almeno 300 DPI per la stampa")

    if width and height and (width < MIN_SIDE_PX or height < MIN_SIDE_PX):
        result.issues.append(ValidationIssue(
            type="warning", message="Dimensioni molto ridotte", severity="medium",
        ))

    if color_space_rgb:
        result.recommendations.append("Converti in CMYK per una stampa ottimale")

    if extension.lower() not in SUPPORTED_EXTENSIONS:
        result.issues.append(ValidationIssue(
            type="error",
            message=f"Formato di file non supportato: {extension or '(nessuna estensione)'}",
            severity="high",
        ))

    return result
