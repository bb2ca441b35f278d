"""
Unit tests per SequenceService.

Le istruzioni SQL generate vengono compilate con il dialetto PostgreSQL
e ispezionate; i risultati di db.execute() sono pilotati con make_result().
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy.dialects import postgresql

from conftest import make_result
from printpro.services.sequence_service import SequenceService

# 09:00 UTC = 12:00 ad Antananarivo, stesso giorno
NOW = datetime(2024, 3, 5, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def sequences():
    return SequenceService()


def compiled(call):
    statement = call.args[0]
    return statement.compile(dialect=postgresql.dialect())


class TestNextValue:

    async def test_existing_counter_incremented(self, sequences, mock_db):
        """Test riga presente: un solo UPDATE ... RETURNING, nessun conteggio."""
        mock_db.execute.return_value = make_result(value=8)

        value = await sequences.next_value(mock_db, "order:20240305", seed_query=object())

        assert value == 8
        assert mock_db.execute.await_count == 1
        sql = str(compiled(mock_db.execute.await_args_list[0]))
        assert sql.startswith("UPDATE sequence_counters")
        assert "RETURNING sequence_counters.value" in sql

    async def test_new_counter_seeded_from_existing_rows(self, sequences, mock_db):
        """Test prima richiesta del periodo: conteggio esistenti e INSERT di seed + 1."""
        mock_db.execute.side_effect = [
            make_result(value=None),
            make_result(scalar=4),
            make_result(value=5),
        ]

        value = await sequences.next_order_number(mock_db, now=NOW)

        assert value == "PP202403050005"
        assert mock_db.execute.await_count == 3

        seed_sql = str(compiled(mock_db.execute.await_args_list[1]))
        assert seed_sql.startswith("SELECT count(orders.id)")

        insert = compiled(mock_db.execute.await_args_list[2])
        assert "ON CONFLICT (key) DO UPDATE" in str(insert)
        assert insert.params["key"] == "order:20240305"
        assert insert.params["value"] == 5

    async def test_new_counter_without_seed(self, sequences, mock_db):
        mock_db.execute.side_effect = [make_result(value=None), make_result(value=1)]

        assert await sequences.next_value(mock_db, "payment:20240305") == 1
        assert compiled(mock_db.execute.await_args_list[1]).params["value"] == 1


class TestBusinessNumbers:

    async def test_sequential_order_numbers_are_distinct(self, sequences, mock_db):
        mock_db.execute.side_effect = [make_result(value=1), make_result(value=2)]

        first = await sequences.next_order_number(mock_db, now=NOW)
        second = await sequences.next_order_number(mock_db, now=NOW)

        assert first == "PP202403050001"
        assert second == "PP202403050002"
        keys = [compiled(call).params["key_1"] for call in mock_db.execute.await_args_list]
        assert keys == ["order:20240305", "order:20240305"]

    async def test_order_number_uses_local_day(self, sequences, mock_db):
        """Test 22:30 UTC del 5 marzo è già il 6 marzo ad Antananarivo."""
        mock_db.execute.return_value = make_result(value=1)

        number = await sequences.next_order_number(
            mock_db, now=datetime(2024, 3, 5, 22, 30, tzinfo=timezone.utc),
        )

        assert number == "PP202403060001"

    async def test_payment_number(self, sequences, mock_db):
        mock_db.execute.return_value = make_result(value=3)

        assert await sequences.next_payment_number(mock_db, now=NOW) == "PAY-20240305-0003"

    async def test_invoice_types_share_monthly_sequence(self, sequences, mock_db):
        """Test fattura e preventivo dello stesso mese usano lo stesso contatore."""
        mock_db.execute.side_effect = [make_result(value=1), make_result(value=2)]

        invoice = await sequences.next_invoice_number(mock_db, "invoice", now=NOW)
        quote = await sequences.next_invoice_number(mock_db, "quote", now=NOW)

        assert invoice == "INVOICE-202403-0001"
        assert quote == "QUOTE-202403-0002"
        keys = [compiled(call).params["key_1"] for call in mock_db.execute.await_args_list]
        assert keys == ["invoice:202403", "invoice:202403"]

    async def test_invoice_seed_counts_all_types(self, sequences, mock_db):
        mock_db.execute.side_effect = [
            make_result(value=None),
            make_result(scalar=6),
            make_result(value=7),
        ]

        number = await sequences.next_invoice_number(mock_db, "proforma", now=NOW)

        assert number == "PROFORMA-202403-0007"
        seed_sql = str(compiled(mock_db.execute.await_args_list[1]))
        assert "FROM invoices" in seed_sql
        assert "invoice_type" not in seed_sql
