"""
Elaborazione dei file di stampa con Pillow
Progetto: PrintPro (Gestionale Tipografia)

Funzioni sincrone (bloccanti): il file_service le esegue in un thread
separato tramite asyncio.to_thread.

- Metadati: dimensioni, DPI, modo colore, formato, qualità di stampa
- Validazione delle proprietà estratte
- Anteprime JPEG (thumbnail 150, medium 500, large 1200) o segnaposto per PDF
- Conversione di formato e ottimizzazione per la stampa
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from PIL import Image

from printpro.core.exceptions import BusinessValidationError
from printpro.domain.files import (
    ColorMode,
    FileMetadata,
    ValidationResult,
    image_metadata,
    is_image_extension,
    pdf_metadata,
    validate_properties,
)

# Logger per questo modulo
logger = logging.getLogger(__name__)

PREVIEW_SIZES = (
    ("thumbnail", 150),
    ("medium", 500),
    ("large", 1200),
)
PREVIEW_QUALITY = 85
PDF_PLACEHOLDER_SIZE = (500, 700)
CONVERSION_QUALITY = 90
PRINT_QUALITY = 95

# Formato Pillow per estensione di destinazione
PIL_FORMATS = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "tiff": "TIFF",
}


@dataclass
class ProcessingOutcome:
    metadata: FileMetadata
    validation: ValidationResult
    previews: list[str] = field(default_factory=list)


def _base_name(path: str) -> str:
    return os.path.splitext(os.path.basename(path))[0]


def _dpi(image: Image.Image) -> Optional[float]:
    dpi = image.info.get("dpi")
    if not dpi:
        return None
    return float(dpi[0]) or None


def _rgb(image: Image.Image) -> Image.Image:
    """Converte in RGB i modi non salvabili come JPEG."""
    if image.mode in ("RGB", "L", "CMYK"):
        return image
    return image.convert("RGB")


# ------------------------------------------------------------
# Metadati e validazione
# ------------------------------------------------------------
def extract_metadata(path: str, extension: str) -> FileMetadata:
    """
    Metadati del file.

    Immagini: letti con Pillow (DPI assente = 72). PDF: formato 'PDF',
    qualità 'high'. Altri formati: metadati vuoti.
    """
    extension = extension.lower()
    if extension == ".pdf":
        return pdf_metadata()
    if not is_image_extension(extension):
        return FileMetadata()

    with Image.open(path) as image:
        return image_metadata(
            width=image.width,
            height=image.height,
            dpi=_dpi(image),
            mode=image.mode,
            bands=len(image.getbands()),
            file_format=image.format,
        )


def _declared_dpi(path: str, extension: str) -> Optional[float]:
    if not is_image_extension(extension):
        return None
    with Image.open(path) as image:
        return _dpi(image)


def validate_file(path: str, extension: str, metadata: FileMetadata) -> ValidationResult:
    """
    Valida dimensione su disco e proprietà già estratte.

    Il controllo di risoluzione usa solo i DPI dichiarati nel file.
    """
    dimensions = metadata.dimensions
    return validate_properties(
        extension=extension,
        size_bytes=os.path.getsize(path),
        width=dimensions.width if dimensions else None,
        height=dimensions.height if dimensions else None,
        dpi=_declared_dpi(path, extension),
        color_space_rgb=metadata.color_mode == ColorMode.RGB,
    )


# ------------------------------------------------------------
# Anteprime
# ------------------------------------------------------------
def generate_previews(path: str, extension: str, previews_dir: str) -> list[str]:
    """
    Genera le anteprime JPEG (q85) senza ingrandire l'originale.

    Per i PDF crea un segnaposto bianco 500x700 della prima pagina.

    Returns:
        Percorsi delle anteprime create
    """
    os.makedirs(previews_dir, exist_ok=True)
    name = _base_name(path)
    extension = extension.lower()
    previews = []

    if is_image_extension(extension):
        with Image.open(path) as image:
            source = image if image.mode in ("RGB", "L") else image.convert("RGB")
            for label, size in PREVIEW_SIZES:
                preview = source.copy()
                preview.thumbnail((size, size))
                preview_path = os.path.join(previews_dir, f"{name}_{label}.jpg")
                preview.save(preview_path, "JPEG", quality=PREVIEW_QUALITY)
                previews.append(preview_path)

    elif extension == ".pdf":
        preview_path = os.path.join(previews_dir, f"{name}_page1.jpg")
        Image.new("RGB", PDF_PLACEHOLDER_SIZE, (255, 255, 255)).save(preview_path, "JPEG")
        previews.append(preview_path)

    return previews


def process_file(path: str, extension: str, previews_dir: str) -> ProcessingOutcome:
    """Pipeline completa: metadati, validazione, anteprime."""
    metadata = extract_metadata(path, extension)
    validation = validate_file(path, extension, metadata)
    previews = generate_previews(path, extension, previews_dir)
    return ProcessingOutcome(metadata=metadata, validation=validation, previews=previews)


# ------------------------------------------------------------
# Conversione e ottimizzazione
# ------------------------------------------------------------
def _require_image(extension: str) -> None:
    if not is_image_extension(extension):
        raise BusinessValidationError("Operazione disponibile solo per le immagini")


def convert_image(path: str, extension: str, target_format: str, output_dir: str) -> str:
    """
    Converte un'immagine nel formato richiesto (qualità 90).

    Raises:
        BusinessValidationError: File non immagine o formato non supportato

    Returns:
        Percorso del file convertito
    """
    _require_image(extension)
    target_format = target_format.lower()
    pil_format = PIL_FORMATS.get(target_format)
    if pil_format is None:
        raise BusinessValidationError(f"Formato di conversione non supportato: {target_format}")

    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, f"{_base_name(path)}_converted.{target_format}")

    with Image.open(path) as image:
        if pil_format == "JPEG":
            image = _rgb(image)
        elif pil_format == "WEBP" and image.mode == "CMYK":
            image = image.convert("RGB")
        options = {"quality": CONVERSION_QUALITY}
        if pil_format == "PNG":
            options = {"optimize": True}
        elif pil_format == "TIFF":
            options = {"compression": "tiff_lzw"}
        image.save(output_path, pil_format, **options)

    logger.info("Convertito %s in %s", path, output_path)
    return output_path


def optimize_for_print(path: str, extension: str, output_dir: str) -> str:
    """
    JPEG qualità 95 senza sottocampionamento cromatico (4:4:4).

    Mantiene DPI e profilo ICC dell'originale.
    """
    _require_image(extension)
    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, f"{_base_name(path)}_print_optimized.jpg")

    with Image.open(path) as image:
        options = {"quality": PRINT_QUALITY, "subsampling": 0}
        if image.info.get("dpi"):
            options["dpi"] = image.info["dpi"]
        if image.info.get("icc_profile"):
            options["icc_profile"] = image.info["icc_profile"]
        _rgb(image).save(output_path, "JPEG", **options)

    logger.info("Ottimizzato per la stampa %s in %s", path, output_path)
    return output_path
