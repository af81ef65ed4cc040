"""
Unit tests for WaveService.

Run: pytest tests/unit/test_wave_service.py -v
"""

import pytest
from datetime import date, timedelta

from services.wave_service import WaveService
from models.wave import (
    ItemType,
    SubmissionBatch,
    SubmissionLine,
    SubmissionUpdate,
    WaveCreate,
    WaveStatus,
    WaveUpdate,
)
from exceptions import DatabaseError, ValidationError, WaveNotFoundError, SubmissionNotFoundError

from tests.factories import MarketFactory, WaveFactory

TODAY = date(2026, 10, 17)


@pytest.fixture
def seeded_wave(mock_supabase):
    """Wave w1 with one display, one kartonware and a palette with one line."""
    mock_supabase.set_table_data("wellen", [WaveFactory.create(id="w1", today=TODAY)])
    mock_supabase.set_table_data("wellen_displays", [
        WaveFactory.display("w1", id="d1", name="Display A", target_number=10)
    ])
    mock_supabase.set_table_data("wellen_kartonware", [
        WaveFactory.kartonware("w1", id="k1", name="Karton B", target_number=20)
    ])
    mock_supabase.set_table_data("wellen_paletten", [WaveFactory.palette("w1", id="p1")])
    mock_supabase.set_table_data("wellen_paletten_products", [
        WaveFactory.palette_product("p1", id="pp1", name="Dreamies Mix", value_per_ve=25.0)
    ])
    return mock_supabase


def batch(*lines, gl="gl-1", market="M1"):
    return SubmissionBatch(
        gebietsleiter_id=gl,
        market_id=market,
        items=[SubmissionLine(item_type=t, item_id=i, quantity=q) for t, i, q in lines],
    )


class TestWaveRead:
    """Tests for get_by_id / get_all."""

    def test_get_by_id_assembles_collections(self, mock_db, seeded_wave):
        # Act
        wave = WaveService().get_by_id("w1", today=TODAY)

        # Assert
        assert [d.name for d in wave.displays] == ["Display A"]
        assert [k.name for k in wave.kartonware_items] == ["Karton B"]
        assert wave.palette_items[0].products[0].name == "Dreamies Mix"
        assert wave.types == [ItemType.DISPLAY, ItemType.KARTONWARE, ItemType.PALETTE]
        assert wave.status == WaveStatus.ACTIVE

    def test_current_number_sums_progress_over_gls(self, mock_db, seeded_wave):
        seeded_wave.set_table_data("wellen_gl_progress", [
            {"welle_id": "w1", "gebietsleiter_id": "gl-1", "item_type": "display", "item_id": "d1", "current_number": 3},
            {"welle_id": "w1", "gebietsleiter_id": "gl-2", "item_type": "display", "item_id": "d1", "current_number": 4},
        ])

        wave = WaveService().get_by_id("w1", today=TODAY)

        assert wave.displays[0].current_number == 7
        assert wave.participating_gls == 2

    def test_get_by_id_not_found(self, mock_db, mock_supabase):
        with pytest.raises(WaveNotFoundError):
            WaveService().get_by_id("missing")

    def test_get_all_filters_by_status(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("wellen", [
            WaveFactory.create(id="old", start_date="2026-01-01", end_date="2026-02-01"),
            WaveFactory.create(id="now", today=TODAY),
        ])

        waves = WaveService().get_all(status="past", today=TODAY)

        assert [w.id for w in waves] == ["old"]


class TestWaveWrite:
    """Tests for create / update / delete."""

    def test_create_with_children(self, mock_db, mock_supabase):
        # Arrange
        data = WaveCreate(
            name="Herbstwelle",
            start_date=date.today() + timedelta(days=3),
            end_date=date.today() + timedelta(days=30),
            goal_type="percentage",
            goal_percentage=75,
            goal_value=5000,
            displays=[{"name": "D1", "target_number": 5}, {"name": "D2", "target_number": 8}],
            kw_days=[{"kw": "kw42", "days": ["Mo", "Di"]}],
            assigned_market_ids=["M1", "M2"],
        )

        # Act
        wave = WaveService().create(data)

        # Assert
        row = mock_supabase.rows("wellen")[0]
        assert row["goal_value"] is None
        assert row["status"] == "upcoming"
        assert [d["display_order"] for d in mock_supabase.rows("wellen_displays")] == [0, 1]
        assert [d.name for d in wave.displays] == ["D1", "D2"]
        assert wave.kw_days[0].kw == "KW42"
        assert sorted(wave.assigned_market_ids) == ["M1", "M2"]

    def test_update_replaces_provided_collection_only(self, mock_db, seeded_wave):
        WaveService().update("w1", WaveUpdate(displays=[{"name": "Neu", "target_number": 2}]))

        displays = seeded_wave.rows("wellen_displays")
        assert [d["name"] for d in displays] == ["Neu"]
        assert len(seeded_wave.rows("wellen_kartonware")) == 1

    def test_update_rejects_inverted_window(self, mock_db, seeded_wave):
        with pytest.raises(ValidationError):
            WaveService().update("w1", WaveUpdate(end_date=date(2000, 1, 1)))

    def test_delete(self, mock_db, seeded_wave):
        assert WaveService().delete("w1") is True
        assert seeded_wave.rows("wellen") == []


class TestSubmitBatch:
    """Tests for WaveService.submit_batch()"""

    def test_only_positive_lines_are_persisted(self, mock_db, seeded_wave):
        # Act
        result = WaveService().submit_batch("w1", batch(
            (ItemType.DISPLAY, "d1", 2),
            (ItemType.KARTONWARE, "k1", 0),
        ))

        # Assert
        rows = seeded_wave.rows("wellen_submissions")
        assert len(rows) == 1
        assert rows[0]["item_id"] == "d1"
        assert len(result.submission_ids) == 1

    def test_progress_is_cumulative(self, mock_db, seeded_wave):
        service = WaveService()

        service.submit_batch("w1", batch((ItemType.DISPLAY, "d1", 2)))
        service.submit_batch("w1", batch((ItemType.DISPLAY, "d1", 3)))

        progress = service.get_gl_progress("w1", "gl-1")
        assert len(progress) == 1
        assert progress[0].current_number == 5

    def test_single_batch_call(self, mock_db, seeded_wave):
        WaveService().submit_batch("w1", batch(
            (ItemType.DISPLAY, "d1", 1),
            (ItemType.PALETTE, "pp1", 4),
        ))

        assert len(seeded_wave.calls_for("wellen_submissions", "insert")) == 1
        assert len(seeded_wave.calls_for("wellen_gl_progress", "upsert")) == 1

    def test_failed_progress_update_leaves_no_rows(self, mock_db, seeded_wave):
        # Arrange
        service = WaveService()
        seeded_wave.failing_tables.add("wellen_gl_progress")

        # Act
        with pytest.raises(DatabaseError):
            service.submit_batch("w1", batch((ItemType.DISPLAY, "d1", 3)))

        # Assert
        assert seeded_wave.rows("wellen_submissions") == []
        assert len(seeded_wave.calls_for("wellen_submissions", "delete")) == 1

    def test_retry_after_failed_progress_update_is_not_duplicated(self, mock_db, seeded_wave):
        service = WaveService()
        seeded_wave.failing_tables.add("wellen_gl_progress")
        with pytest.raises(DatabaseError):
            service.submit_batch("w1", batch((ItemType.DISPLAY, "d1", 3)))

        seeded_wave.failing_tables.clear()
        service.submit_batch("w1", batch((ItemType.DISPLAY, "d1", 3)))

        assert len(seeded_wave.rows("wellen_submissions")) == 1
        assert service.get_gl_progress("w1", "gl-1")[0].current_number == 3

    def test_all_zero_raises(self, mock_db, seeded_wave):
        with pytest.raises(ValidationError):
            WaveService().submit_batch("w1", batch((ItemType.DISPLAY, "d1", 0)))

        assert seeded_wave.rows("wellen_submissions") == []


class TestAllProgress:
    """Tests for WaveService.get_all_progress()"""

    @pytest.fixture
    def progress_rows(self, seeded_wave):
        seeded_wave.set_table_data("gebietsleiter", [{"id": "gl-1", "name": "Anna Huber"}])
        seeded_wave.set_table_data("markets", [
            MarketFactory.create(id="M1", name="Billa Baden", chain="Billa"),
            MarketFactory.create(id="M3", name="Spar Wien", chain="Spar"),
        ])
        seeded_wave.set_table_data("wellen_gl_progress", [
            {"id": "g1", "welle_id": "w1", "gebietsleiter_id": "gl-1", "item_type": "display",
             "item_id": "d1", "current_number": 3, "updated_at": "2026-10-16T09:00:00Z"},
            {"id": "g2", "welle_id": "w1", "gebietsleiter_id": "gl-2", "item_type": "palette",
             "item_id": "pp1", "current_number": 4, "updated_at": "2026-10-15T09:00:00Z"},
        ])
        seeded_wave.set_table_data("wellen_submissions", [
            {"id": "s1", "welle_id": "w1", "gebietsleiter_id": "gl-1", "market_id": "M1",
             "item_type": "display", "item_id": "d1", "quantity": 2, "created_at": "2026-10-10T09:00:00Z"},
            {"id": "s2", "welle_id": "w1", "gebietsleiter_id": "gl-1", "market_id": "M3",
             "item_type": "display", "item_id": "d1", "quantity": 1, "created_at": "2026-10-16T09:00:00Z"},
            {"id": "s3", "welle_id": "w1", "gebietsleiter_id": "gl-2", "market_id": "M9",
             "item_type": "palette", "item_id": "pp1", "quantity": 4, "created_at": "2026-10-15T09:00:00Z"},
        ])
        return seeded_wave

    def test_rows_carry_names_and_values(self, mock_db, progress_rows):
        # Act
        entries = WaveService().get_all_progress("w1")

        # Assert
        assert [e.id for e in entries] == ["g1", "g2"]
        first, second = entries
        assert (first.gl_name, first.market_name, first.market_chain) == ("Anna Huber", "Spar Wien", "Spar")
        assert (first.item_name, first.quantity, first.value) == ("Display A", 3, 360.0)
        assert second.item_name == "Palette Frühjahr: Dreamies Mix"
        assert second.value == 100.0

    def test_unknown_gl_and_market_fall_back(self, mock_db, progress_rows):
        entry = WaveService().get_all_progress("w1")[1]

        assert entry.gl_name == "Unknown"
        assert entry.market_id == "M9"
        assert entry.market_name == "Unknown"

    def test_wave_without_progress(self, mock_db, seeded_wave):
        assert WaveService().get_all_progress("w1") == []

    def test_unknown_wave(self, mock_db, mock_supabase):
        with pytest.raises(WaveNotFoundError):
            WaveService().get_all_progress("missing")


class TestSubmissionCorrections:

    def test_update_quantity_adjusts_progress(self, mock_db, seeded_wave):
        service = WaveService()
        result = service.submit_batch("w1", batch((ItemType.DISPLAY, "d1", 5)))

        service.update_submission(result.submission_ids[0], SubmissionUpdate(quantity=2))

        assert service.get_gl_progress("w1", "gl-1")[0].current_number == 2

    def test_delete_submission_removes_quantity(self, mock_db, seeded_wave):
        service = WaveService()
        service.submit_batch("w1", batch((ItemType.DISPLAY, "d1", 1)))
        result = service.submit_batch("w1", batch((ItemType.DISPLAY, "d1", 4)))

        service.delete_submission(result.submission_ids[0])

        assert service.get_gl_progress("w1", "gl-1")[0].current_number == 1

    def test_delete_unknown_submission(self, mock_db, mock_supabase):
        with pytest.raises(SubmissionNotFoundError):
            WaveService().delete_submission("nope")


class TestDeliveryPhotos:
    """Pending delivery photos and uploads."""

    def test_pending_only_rows_without_delivery_photo(self, mock_db, seeded_wave):
        # Arrange
        seeded_wave.set_table_data("wellen_submissions", [
            WaveFactory.submission("w1", "M1", id="s1", item_id="d1"),
            WaveFactory.submission("w1", "M1", id="s2", item_id="d1", delivery_photo_url="https://x/y.jpg"),
            WaveFactory.submission("w1", "M2", id="s3", item_id="d1"),
        ])

        # Act
        pending = WaveService().get_pending_delivery_photos("M1")

        # Assert
        assert [p.submission_id for p in pending] == ["s1"]
        assert pending[0].item_name == "Display A"
        assert pending[0].welle_name == "Frühjahrswelle"

    def test_upload_closes_obligations(self, mock_db, seeded_wave):
        seeded_wave.set_table_data("wellen_submissions", [
            WaveFactory.submission("w1", "M1", id="s1", item_id="d1"),
            WaveFactory.submission("w1", "M1", id="s2", item_id="d1"),
        ])
        service = WaveService()

        url, updated = service.upload_delivery_photo(["s1", "s2"], "data:image/png;base64,aGVsbG8=")

        assert updated == 2
        assert url.startswith("https://storage.test/")
        assert service.get_pending_delivery_photos("M1") == []

    def test_submission_photo_stored_with_tags(self, mock_db, seeded_wave):
        WaveService().upload_submission_photo(
            "w1", "gl-1", "M1", "aGVsbG8=", tags=["Regal", "Aktion"]
        )

        photo = seeded_wave.rows("wellen_photos")[0]
        assert photo["tags"] == ["Regal", "Aktion"]
        assert len(seeded_wave.storage.uploads) == 1
