"""
Unit tests per il calcolo prezzi del listino.
"""

from decimal import Decimal

import pytest

from printpro.core.exceptions import BusinessValidationError, InvalidQuantityError
from printpro.domain.pricing import (
    OptionType,
    PricedOption,
    calculate_price,
    is_selected,
    validate_option_definitions,
)

LAMINATION = PricedOption(
    id="lamination",
    name="Pelliculage",
    type=OptionType.CHECKBOX,
    price_modifier=Decimal("10"),
)
PAPER = PricedOption(
    id="paper",
    name="Papier",
    type=OptionType.SELECT,
    price_modifier=Decimal("5"),
    choices=("couché 135g", "couché 250g"),
)


# ============================================================
# Tests per la quantità
# ============================================================


class TestQuantityValidation:
    """La quantità viene validata prima di qualsiasi calcolo."""

    def test_quantity_below_minimum(self):
        """Test quantità sotto il minimo: errore, nessun clamp."""
        with pytest.raises(InvalidQuantityError) as exc_info:
            calculate_price(Decimal("50"), 50, 100, 10000, [])

        assert exc_info.value.status_code == 422
        assert exc_info.value.extra == {"quantity": 50, "min_quantity": 100, "max_quantity": 10000}

    def test_quantity_above_maximum(self):
        """Test quantità sopra il massimo."""
        with pytest.raises(InvalidQuantityError):
            calculate_price(Decimal("50"), 10001, 100, 10000, [])

    def test_quantity_on_bounds(self):
        """Test i limiti sono inclusi."""
        assert calculate_price(Decimal("50"), 100, 100, 10000, []).total_price == Decimal("5000.00")
        assert calculate_price(Decimal("50"), 10000, 100, 10000, []).total_price == Decimal("500000.00")

    def test_service_name_in_message(self):
        """Test il messaggio riporta il nome del servizio."""
        with pytest.raises(InvalidQuantityError, match="Flyers A5"):
            calculate_price(Decimal("50"), 1, 100, 10000, [], service_name="Flyers A5")


# ============================================================
# Tests per il calcolo
# ============================================================


class TestCalculatePrice:
    """Tests per prezzo unitario e totale."""

    def test_base_price_only(self):
        """Test 500 unità a 50 = 25000."""
        quote = calculate_price(Decimal("50"), 500, 100, 10000, [LAMINATION])

        assert quote.unit_price == Decimal("50.00")
        assert quote.total_price == Decimal("25000.00")
        assert quote.applied_options == ()

    def test_selected_option_adds_modifier(self):
        """Test un'opzione selezionata aumenta il prezzo unitario."""
        quote = calculate_price(
            Decimal("50"), 500, 100, 10000, [LAMINATION, PAPER],
            {"lamination": True, "paper": "couché 250g"},
        )

        assert quote.unit_price == Decimal("65.00")
        assert quote.total_price == Decimal("32500.00")
        assert set(quote.applied_options) == {"lamination", "paper"}

    def test_unselected_option_is_free(self):
        """Test valori falsy non applicano il sovrapprezzo."""
        quote = calculate_price(
            Decimal("50"), 200, 100, 10000, [LAMINATION],
            {"lamination": False},
        )

        assert quote.unit_price == Decimal("50.00")

    def test_unknown_option_ignored(self):
        """Test le opzioni sconosciute vengono ignorate e riportate."""
        quote = calculate_price(
            Decimal("50"), 200, 100, 10000, [LAMINATION],
            {"gold_foil": True},
        )

        assert quote.unit_price == Decimal("50.00")
        assert quote.ignored_options == ("gold_foil",)

    def test_unknown_option_strict(self):
        """Test in modalità strict un'opzione sconosciuta è un errore."""
        with pytest.raises(BusinessValidationError, match="gold_foil"):
            calculate_price(
                Decimal("50"), 200, 100, 10000, [LAMINATION],
                {"gold_foil": True},
                strict=True,
            )

    def test_strict_rejects_invalid_choice(self):
        """Test in modalità strict un valore select non ammesso è un errore."""
        with pytest.raises(BusinessValidationError):
            calculate_price(
                Decimal("50"), 200, 100, 10000, [PAPER],
                {"paper": "carton"},
                strict=True,
            )

    def test_decimal_rounding(self):
        """Test arrotondamento al centesimo."""
        quote = calculate_price(Decimal("0.125"), 3, 1, 10, [])

        assert quote.unit_price == Decimal("0.13")
        assert quote.total_price == Decimal("0.39")


class TestIsSelected:

    @pytest.mark.parametrize("value", [True, "couché 135g", 1, 3])
    def test_truthy(self, value):
        assert is_selected(value) is True

    @pytest.mark.parametrize("value", [False, None, "", 0])
    def test_falsy(self, value):
        assert is_selected(value) is False


class TestOptionDefinitions:
    """Tests per la validazione delle opzioni di un servizio."""

    def test_duplicate_ids(self):
        options = [
            {"id": "a", "name": "A", "type": "checkbox"},
            {"id": "a", "name": "A bis", "type": "checkbox"},
        ]
        with pytest.raises(BusinessValidationError, match="duplicata"):
            validate_option_definitions(options)

    def test_select_without_choices(self):
        with pytest.raises(BusinessValidationError):
            validate_option_definitions([{"id": "paper", "name": "Papier", "type": "select"}])

    def test_from_dict_defaults(self):
        option = PricedOption.from_dict({"id": "rush"})

        assert option.name == "rush"
        assert option.type == OptionType.CHECKBOX
        assert option.price_modifier == Decimal("0")
