"""
Vorverkauf (exchange) service.

Stores exchange entries with their take-out and replace lines and reads
them back with GL, market and product names.
"""

from collections import Counter, defaultdict
from typing import Optional
import structlog

from config import get_supabase_client
from models.exchange import (
    ExchangeCreate,
    ExchangeEntry,
    ExchangeItem,
    ExchangeReason,
    ExchangeStats,
    ExchangeCreated,
)
from exceptions import ExchangeNotFoundError, DatabaseError
from services import invalidation
from services.invalidation import Resource
from utils.text_utils import matches_query

logger = structlog.get_logger(__name__)

UNKNOWN_GL = "Unknown"


class ExchangeService:
    """Exchange entry business logic."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "vorverkauf_entries"
        self.items_table = "vorverkauf_items"

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(
        self,
        gebietsleiter_id: Optional[str] = None,
        search: Optional[str] = None
    ) -> list[ExchangeEntry]:
        """
        Get exchange entries, newest first.

        Args:
            gebietsleiter_id: Only entries of this GL
            search: Substring over GL name, market name/chain and product name/brand

        Returns:
            Entries with resolved names and lines
        """
        logger.info("getting_exchanges", gebietsleiter_id=gebietsleiter_id)

        try:
            query = self.db.table(self.table).select("*")
            if gebietsleiter_id:
                query = query.eq("gebietsleiter_id", gebietsleiter_id)
            result = query.order("created_at", desc=True).execute()
        except Exception as e:
            logger.error("get_exchanges_failed", error=str(e))
            raise DatabaseError("select", str(e))

        entries = self._with_details(result.data)

        if search:
            entries = [
                e for e in entries
                if matches_query(search, e.gl_name, e.market_name, e.market_chain)
                or any(matches_query(search, i.product_name, i.product_brand) for i in e.items)
            ]

        logger.info("exchanges_retrieved", count=len(entries))
        return entries

    def get_by_id(self, entry_id: str) -> ExchangeEntry:
        """
        Get one exchange entry.

        Raises:
            ExchangeNotFoundError: If the entry doesn't exist
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", entry_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_exchange_failed", entry_id=entry_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise ExchangeNotFoundError(entry_id)

        return self._with_details(result.data)[0]

    def get_stats(self) -> ExchangeStats:
        """Entry count, item count and entries per reason."""
        try:
            entries = self.db.table(self.table).select("id, reason").execute().data
            items = self.db.table(self.items_table).select("quantity").execute().data
        except Exception as e:
            logger.error("get_exchange_stats_failed", error=str(e))
            raise DatabaseError("select", str(e))

        reasons = Counter(row.get("reason") for row in entries)
        return ExchangeStats(
            total_entries=len(entries),
            total_items=sum(row.get("quantity") or 0 for row in items),
            by_reason={reason.value: reasons.get(reason.value, 0) for reason in ExchangeReason},
        )

    def _lookup(self, table: str, ids: set, columns: str = "*") -> dict[str, dict]:
        """id -> row for the given ids."""
        if not ids:
            return {}
        try:
            result = self.db.table(table).select(columns).in_("id", list(ids)).execute()
        except Exception as e:
            logger.error("lookup_failed", table=table, error=str(e))
            raise DatabaseError("select", str(e))
        return {str(row["id"]): row for row in result.data}

    def _with_details(self, rows: list[dict]) -> list[ExchangeEntry]:
        if not rows:
            return []

        ids = [row["id"] for row in rows]
        try:
            item_rows = (
                self.db.table(self.items_table)
                .select("*")
                .in_("vorverkauf_entry_id", ids)
                .execute()
                .data
            )
        except Exception as e:
            logger.error("get_exchange_items_failed", error=str(e))
            raise DatabaseError("select", str(e))

        gls = self._lookup("gebietsleiter", {row["gebietsleiter_id"] for row in rows})
        markets = self._lookup("markets", {row["market_id"] for row in rows})
        products = self._lookup("products", {row["product_id"] for row in item_rows})

        items_by_entry = defaultdict(list)
        for row in item_rows:
            product = products.get(str(row["product_id"]), {})
            items_by_entry[row["vorverkauf_entry_id"]].append(ExchangeItem(
                id=str(row["id"]),
                product_id=str(row["product_id"]),
                product_name=product.get("name") or "Unbekannt",
                product_brand=product.get("brand") or "",
                product_size=product.get("weight") or "",
                product_price=float(product.get("price") or 0),
                quantity=row.get("quantity") or 1,
                item_type=row.get("item_type") or "take_out",
            ))

        entries = []
        for row in rows:
            market = markets.get(str(row["market_id"]), {})
            gl = gls.get(str(row["gebietsleiter_id"]), {})
            entries.append(ExchangeEntry(
                id=str(row["id"]),
                gebietsleiter_id=str(row["gebietsleiter_id"]),
                gl_name=gl.get("name") or UNKNOWN_GL,
                market_id=str(row["market_id"]),
                market_name=market.get("name") or "Unbekannt",
                market_chain=market.get("chain") or "",
                market_address=market.get("address") or "",
                market_city=market.get("city") or "",
                reason=row["reason"],
                notes=row.get("notes"),
                items=items_by_entry[row["id"]],
                created_at=row.get("created_at"),
            ))
        return entries

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: ExchangeCreate) -> ExchangeCreated:
        """
        Store an exchange entry with its lines.

        Args:
            data: Entry with take-out and replace lines

        Returns:
            New entry id and number of lines written
        """
        logger.info(
            "creating_exchange",
            gebietsleiter_id=data.gebietsleiter_id,
            market_id=data.market_id,
            reason=data.reason.value
        )

        try:
            result = self.db.table(self.table).insert({
                "gebietsleiter_id": data.gebietsleiter_id,
                "market_id": data.market_id,
                "reason": data.reason.value,
                "notes": data.notes,
                "status": "submitted",
            }).execute()
            entry_id = str(result.data[0]["id"])

            rows = data.item_rows(entry_id)
            self.db.table(self.items_table).insert(rows).execute()

        except Exception as e:
            logger.error("create_exchange_failed", error=str(e))
            raise DatabaseError("insert", str(e))

        logger.info("exchange_created", entry_id=entry_id, items=len(rows))
        invalidation.publish(Resource.EXCHANGE, entry_id)
        return ExchangeCreated(id=entry_id, items_count=len(rows))

    def delete(self, entry_id: str) -> bool:
        """
        Delete an entry and its lines.

        Raises:
            ExchangeNotFoundError: If the entry doesn't exist
        """
        logger.info("deleting_exchange", entry_id=entry_id)

        self.get_by_id(entry_id)

        try:
            self.db.table(self.items_table).delete().eq("vorverkauf_entry_id", entry_id).execute()
            self.db.table(self.table).delete().eq("id", entry_id).execute()
        except Exception as e:
            logger.error("delete_exchange_failed", entry_id=entry_id, error=str(e))
            raise DatabaseError("delete", str(e))

        invalidation.publish(Resource.EXCHANGE, entry_id)
        return True


# Singleton instance
_exchange_service: Optional[ExchangeService] = None


def get_exchange_service() -> ExchangeService:
    """Get or create exchange service instance."""
    global _exchange_service
    if _exchange_service is None:
        _exchange_service = ExchangeService()
    return _exchange_service
