"""
Unit tests per la numerazione progressiva.
"""

from datetime import date, datetime, timezone

import pytest

from printpro.core.exceptions import ConflictError
from printpro.domain import numbering


class TestFormats:

    def test_order_number(self):
        assert numbering.format_order_number(date(2024, 3, 5), 7) == "PP202403050007"

    def test_payment_number(self):
        assert numbering.format_payment_number(date(2024, 3, 5), 1) == "PAY-20240305-0001"

    def test_invoice_number(self):
        assert numbering.format_invoice_number("quote", date(2024, 3, 5), 12) == "QUOTE-202403-0012"
        assert numbering.format_invoice_number("credit_note", date(2024, 3, 5), 1) == "CREDIT_NOTE-202403-0001"

    def test_sequence_limit(self):
        """Test oltre 9999 numeri nel periodo."""
        assert numbering.format_order_number(date(2024, 3, 5), 9999).endswith("9999")
        with pytest.raises(ConflictError):
            numbering.format_order_number(date(2024, 3, 5), 10000)

    def test_invalid_sequence(self):
        with pytest.raises(ValueError):
            numbering.format_payment_number(date(2024, 3, 5), 0)


class TestCounterKeys:

    def test_keys(self):
        day = date(2024, 12, 31)

        assert numbering.order_counter_key(day) == "order:20241231"
        assert numbering.payment_counter_key(day) == "payment:20241231"
        assert numbering.invoice_counter_key(day) == "invoice:202412"


class TestWindows:

    def test_month_window_december(self):
        assert numbering.month_window(date(2024, 12, 15)) == (date(2024, 12, 1), date(2025, 1, 1))

    def test_day_window(self):
        assert numbering.day_window(date(2024, 2, 29)) == (date(2024, 2, 29), date(2024, 3, 1))

    def test_local_today_uses_timezone(self):
        """Test 22:30 UTC è già il giorno dopo ad Antananarivo (UTC+3)."""
        now = datetime(2024, 3, 5, 22, 30, tzinfo=timezone.utc)

        assert numbering.local_today("Indian/Antananarivo", now) == date(2024, 3, 6)
        assert numbering.local_today("UTC", now) == date(2024, 3, 5)
