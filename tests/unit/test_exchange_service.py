"""
Unit tests for ExchangeService.

Run: pytest tests/unit/test_exchange_service.py -v
"""

import pytest

from services.exchange_service import ExchangeService
from models.exchange import ExchangeCreate
from exceptions import ExchangeNotFoundError, DatabaseError

from tests.factories import MarketFactory, ProductFactory


@pytest.fixture
def seeded(mock_supabase):
    mock_supabase.set_table_data("gebietsleiter", [{"id": "gl-1", "name": "Anna Berger"}])
    mock_supabase.set_table_data("markets", [
        MarketFactory.create(id="M1", name="Billa Mödling", chain="Billa+")
    ])
    mock_supabase.set_table_data("products", [
        ProductFactory.create(id="p1", name="Whiskas Huhn", brand="Whiskas", price=2.5),
        ProductFactory.create(id="p2", name="Sheba Lachs", brand="Sheba", price=3.0),
    ])
    mock_supabase.set_table_data("vorverkauf_entries", [
        {"id": "e1", "gebietsleiter_id": "gl-1", "market_id": "M1", "reason": "OOS",
         "notes": None, "created_at": "2026-10-01T08:00:00Z"},
        {"id": "e2", "gebietsleiter_id": "gl-x", "market_id": "M-gone", "reason": "Platzierung",
         "notes": "Regal umgebaut", "created_at": "2026-10-02T08:00:00Z"},
    ])
    mock_supabase.set_table_data("vorverkauf_items", [
        {"id": "i1", "vorverkauf_entry_id": "e1", "product_id": "p1", "quantity": 3, "item_type": "take_out"},
        {"id": "i2", "vorverkauf_entry_id": "e1", "product_id": "p2", "quantity": 2, "item_type": "replace"},
        {"id": "i3", "vorverkauf_entry_id": "e2", "product_id": "p-gone", "quantity": 1, "item_type": "take_out"},
    ])
    return mock_supabase


class TestGetExchanges:
    """Tests for ExchangeService.get_all() and get_by_id()"""

    def test_newest_first_with_names(self, mock_db, seeded):
        # Act
        entries = ExchangeService().get_all()

        # Assert
        assert [e.id for e in entries] == ["e2", "e1"]
        e1 = entries[1]
        assert e1.gl_name == "Anna Berger"
        assert e1.market_name == "Billa Mödling"
        assert {i.product_name for i in e1.items} == {"Whiskas Huhn", "Sheba Lachs"}
        assert e1.total_items == 5

    def test_unresolved_references_fall_back(self, mock_db, seeded):
        entry = ExchangeService().get_by_id("e2")

        assert entry.gl_name == "Unknown"
        assert entry.market_name == "Unbekannt"
        assert entry.items[0].product_name == "Unbekannt"

    def test_search_matches_product_brand(self, mock_db, seeded):
        entries = ExchangeService().get_all(search="sheba")

        assert [e.id for e in entries] == ["e1"]

    def test_search_matches_market_without_accents(self, mock_db, seeded):
        entries = ExchangeService().get_all(search="modling")

        assert [e.id for e in entries] == ["e1"]

    def test_filter_by_gl(self, mock_db, seeded):
        entries = ExchangeService().get_all(gebietsleiter_id="gl-x")

        assert [e.id for e in entries] == ["e2"]

    def test_not_found(self, mock_db, seeded):
        with pytest.raises(ExchangeNotFoundError):
            ExchangeService().get_by_id("nope")

    def test_database_error(self, mock_db, seeded):
        seeded.failing_tables.add("vorverkauf_entries")

        with pytest.raises(DatabaseError):
            ExchangeService().get_all()


class TestExchangeStats:

    def test_counts_every_reason(self, mock_db, seeded):
        stats = ExchangeService().get_stats()

        assert stats.total_entries == 2
        assert stats.total_items == 6
        assert stats.by_reason == {"OOS": 1, "Listungslücke": 0, "Platzierung": 1}


class TestCreateExchange:
    """Tests for ExchangeService.create()"""

    def test_writes_entry_and_both_sides(self, mock_db, mock_supabase):
        # Arrange
        data = ExchangeCreate(
            gebietsleiter_id="gl-1",
            market_id="M1",
            reason="Listungslücke",
            take_out_items=[{"product_id": "p1", "quantity": 2}],
            replace_items=[{"product_id": "p2"}, {"product_id": "p3", "quantity": 4}],
        )

        # Act
        created = ExchangeService().create(data)

        # Assert
        entry = mock_supabase.rows("vorverkauf_entries")[0]
        assert entry["status"] == "submitted"
        assert created.id == entry["id"]
        assert created.items_count == 3
        items = mock_supabase.rows("vorverkauf_items")
        assert [i["item_type"] for i in items] == ["take_out", "replace", "replace"]
        assert created.to_api() == {"id": entry["id"], "itemsCount": 3}

    def test_requires_a_line(self):
        with pytest.raises(ValueError):
            ExchangeCreate(gebietsleiter_id="gl-1", market_id="M1", reason="OOS")


class TestDeleteExchange:

    def test_deletes_entry_and_lines(self, mock_db, seeded):
        ExchangeService().delete("e1")

        assert [e["id"] for e in seeded.rows("vorverkauf_entries")] == ["e2"]
        assert [i["id"] for i in seeded.rows("vorverkauf_items")] == ["i3"]
