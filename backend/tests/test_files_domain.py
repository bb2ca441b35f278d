"""
Unit tests per classificazione e validazione dei file.
"""

import pytest

from printpro.domain.files import (
    ColorMode,
    PrintQuality,
    ValidationResult,
    color_mode_for,
    image_metadata,
    print_quality_for,
    validate_properties,
)


class TestClassification:

    @pytest.mark.parametrize("dpi, expected", [
        (300, PrintQuality.PRINT_READY),
        (299, PrintQuality.HIGH),
        (150, PrintQuality.HIGH),
        (72, PrintQuality.MEDIUM),
        (71, PrintQuality.LOW),
    ])
    def test_print_quality(self, dpi, expected):
        assert print_quality_for(dpi) == expected

    def test_rgba_is_not_cmyk(self):
        """Test un PNG RGBA ha 4 canali ma resta RGB."""
        assert color_mode_for("RGBA", 4) == ColorMode.RGB
        assert color_mode_for("CMYK", 4) == ColorMode.CMYK
        assert color_mode_for("L", 1) == ColorMode.GRAYSCALE

    def test_missing_dpi_defaults_to_72(self):
        metadata = image_metadata(800, 600, None, "RGB", 3, "PNG")

        assert metadata.resolution == 72
        assert metadata.print_quality == PrintQuality.MEDIUM
        assert metadata.file_format == "png"


class TestValidation:

    def test_valid_print_file(self):
        result = validate_properties(".jpg", 2_000_000, 3508, 2480, 300)

        assert result.is_valid
        assert result.issues == []

    def test_low_resolution_is_warning(self):
        """Test DPI bassi generano un avviso, non un errore."""
        result = validate_properties(".jpg", 1000, 1000, 1000, 96)

        assert result.is_valid
        assert result.issues[0].severity == "high"
        assert "96" in result.issues[0].message

    def test_small_dimensions(self):
        result = validate_properties(".png", 1000, 200, 800)

        assert [i.message for i in result.issues] == ["Dimensioni molto ridotte"]

    def test_rgb_recommendation(self):
        result = validate_properties(".png", 1000, 1000, 1000, color_space_rgb=True)

        assert "Converti in CMYK per una stampa ottimale" in result.recommendations

    def test_unsupported_extension(self):
        result = validate_properties(".exe", 1000)

        assert not result.is_valid

    def test_failure(self):
        result = ValidationResult.failure("boom")

        assert not result.is_valid
        assert result.model_dump()["is_valid"] is False
