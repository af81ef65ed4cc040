"""
Test data factories.

Each factory returns rows shaped like the database tables. Overrides
replace any column.
"""

from datetime import date, datetime, timedelta
from typing import Optional
from uuid import uuid4


class MarketFactory:
    """
    Factory for markets rows.

    Usage:
        market = MarketFactory.create()
        market = MarketFactory.create(name="Billa Wien", last_visit_date="2026-01-10")
        markets = MarketFactory.create_batch(5, gebietsleiter_id="gl-1")
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(cls, **overrides) -> dict:
        counter = cls._next_counter()
        now = datetime.utcnow().isoformat() + "Z"

        row = {
            "id": f"M{counter:04d}",
            "internal_id": f"M{counter:04d}",
            "name": f"Markt {counter}",
            "address": f"Hauptstraße {counter}",
            "city": "Wien",
            "postal_code": "1010",
            "chain": "Billa+",
            "gebietsleiter_id": "gl-1",
            "gebietsleiter_name": "Anna Berger",
            "frequency": 12,
            "current_visits": 0,
            "last_visit_date": None,
            "is_completed": False,
            "is_active": True,
            "latitude": None,
            "longitude": None,
            "created_at": now,
            "updated_at": now,
        }
        row.update(overrides)
        return row

    @classmethod
    def create_batch(cls, count: int, **overrides) -> list:
        return [cls.create(**overrides) for _ in range(count)]

    @classmethod
    def visited_days_ago(cls, days: int, today: date, **overrides) -> dict:
        """Market whose last visit lies days before today."""
        return cls.create(last_visit_date=(today - timedelta(days=days)).isoformat(), **overrides)


class ProductFactory:
    """Factory for products rows."""

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(cls, **overrides) -> dict:
        counter = cls._next_counter()
        now = datetime.utcnow().isoformat() + "Z"

        row = {
            "id": str(uuid4()),
            "name": f"Produkt {counter}",
            "department": "pets",
            "product_type": "standard",
            "weight": "150g",
            "content": None,
            "pallet_size": None,
            "price": 2.5,
            "sku": f"SKU{counter}",
            "artikel_nr": None,
            "brand": "Whiskas",
            "palette_products": None,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }
        row.update(overrides)
        return row

    @classmethod
    def create_batch(cls, count: int, **overrides) -> list:
        return [cls.create(**overrides) for _ in range(count)]

    @classmethod
    def create_palette(cls, lines: Optional[list] = None, **overrides) -> dict:
        """Palette product with constituent lines and price 0."""
        defaults = {
            "product_type": "palette",
            "price": 0,
            "palette_products": lines or [
                {"name": "Sheba Huhn", "value": 1.5, "ve": 24, "ean": "9003579000001"},
                {"name": "Sheba Lachs", "value": 2.0, "ve": 12, "ean": None},
            ],
        }
        defaults.update(overrides)
        return cls.create(**defaults)


class WaveFactory:
    """
    Factory for wellen rows and their child rows.

    Usage:
        wave = WaveFactory.create(id="w1")
        display = WaveFactory.display("w1", id="d1", target_number=10)
    """

    @classmethod
    def create(cls, today: Optional[date] = None, **overrides) -> dict:
        today = today or date.today()
        now = datetime.utcnow().isoformat() + "Z"

        row = {
            "id": str(uuid4()),
            "name": "Frühjahrswelle",
            "image_url": None,
            "start_date": (today - timedelta(days=7)).isoformat(),
            "end_date": (today + timedelta(days=21)).isoformat(),
            "status": "active",
            "goal_type": "percentage",
            "goal_percentage": 80,
            "goal_value": None,
            "foto_enabled": False,
            "foto_only": False,
            "foto_header": None,
            "foto_description": None,
            "created_at": now,
            "updated_at": now,
        }
        row.update(overrides)
        return row

    @classmethod
    def display(cls, welle_id: str, **overrides) -> dict:
        row = {
            "id": str(uuid4()),
            "welle_id": welle_id,
            "name": "Display Sheba",
            "target_number": 10,
            "item_value": 120.0,
            "picture_url": None,
            "display_order": 0,
        }
        row.update(overrides)
        return row

    @classmethod
    def kartonware(cls, welle_id: str, **overrides) -> dict:
        row = {
            "id": str(uuid4()),
            "welle_id": welle_id,
            "name": "Karton Whiskas",
            "target_number": 20,
            "item_value": 30.0,
            "picture_url": None,
            "kartonware_order": 0,
        }
        row.update(overrides)
        return row

    @classmethod
    def palette(cls, welle_id: str, **overrides) -> dict:
        row = {
            "id": str(uuid4()),
            "welle_id": welle_id,
            "name": "Palette Frühjahr",
            "size": "1/4",
            "picture_url": None,
        }
        row.update(overrides)
        return row

    @classmethod
    def palette_product(cls, palette_id: str, **overrides) -> dict:
        row = {
            "id": str(uuid4()),
            "palette_id": palette_id,
            "name": "Dreamies Mix",
            "value_per_ve": 25.0,
            "ve": 6,
            "ean": None,
        }
        row.update(overrides)
        return row

    @classmethod
    def submission(cls, welle_id: str, market_id: str, **overrides) -> dict:
        row = {
            "id": str(uuid4()),
            "welle_id": welle_id,
            "gebietsleiter_id": "gl-1",
            "market_id": market_id,
            "item_type": "display",
            "item_id": str(uuid4()),
            "quantity": 1,
            "value_per_unit": None,
            "photo_url": None,
            "delivery_photo_url": None,
            "created_at": datetime.utcnow().isoformat() + "Z",
        }
        row.update(overrides)
        return row
