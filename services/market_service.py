"""
Market service for business logic operations.

Handles market CRUD, bulk import and visit recording.
"""

from datetime import date
from typing import Optional
import structlog

from config import get_supabase_client
from models.market import (
    MarketCreate,
    MarketUpdate,
    MarketResponse,
    VisitResult,
    MarketImportResult,
    market_from_row,
    market_to_row,
)
from exceptions import MarketNotFoundError, DatabaseError
from services import invalidation
from services.invalidation import Resource
from utils.text_utils import matches_query

logger = structlog.get_logger(__name__)


class MarketService:
    """
    Market business logic.

    Handles CRUD operations for markets plus visit counters.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "markets"

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(
        self,
        gebietsleiter_id: Optional[str] = None,
        chain: Optional[str] = None,
        active_only: bool = False,
        search: Optional[str] = None
    ) -> list[MarketResponse]:
        """
        Get all markets sorted by name.

        Args:
            gebietsleiter_id: Only markets owned by this GL
            chain: Filter by retail chain
            active_only: Only return active markets
            search: Substring over name, chain, address and city

        Returns:
            List of markets, name ascending
        """
        logger.info(
            "getting_markets",
            gebietsleiter_id=gebietsleiter_id,
            chain=chain,
            active_only=active_only
        )

        try:
            query = self.db.table(self.table).select("*")

            if gebietsleiter_id:
                query = query.eq("gebietsleiter_id", gebietsleiter_id)
            if chain:
                query = query.eq("chain", chain)
            if active_only:
                query = query.eq("is_active", True)

            result = query.order("name").execute()

            markets = [market_from_row(row) for row in result.data]

        except Exception as e:
            logger.error("get_markets_failed", error=str(e))
            raise DatabaseError("select", str(e))

        if search:
            markets = [
                m for m in markets
                if matches_query(search, m.name, m.chain, m.address, m.city)
            ]

        logger.info("markets_retrieved", count=len(markets))
        return markets

    def get_by_id(self, market_id: str) -> MarketResponse:
        """
        Get a single market by ID.

        Args:
            market_id: Market ID

        Returns:
            MarketResponse

        Raises:
            MarketNotFoundError: If market doesn't exist
        """
        logger.debug("getting_market", market_id=market_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", market_id)
                .execute()
            )

            if not result.data:
                raise MarketNotFoundError(market_id)

            return market_from_row(result.data[0])

        except MarketNotFoundError:
            raise
        except Exception as e:
            logger.error(
                "get_market_failed",
                market_id=market_id,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    def get_by_ids(self, market_ids: list[str]) -> list[MarketResponse]:
        """
        Get several markets at once.

        Args:
            market_ids: Market IDs (unknown IDs are skipped)

        Returns:
            Markets found, name ascending
        """
        if not market_ids:
            return []

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .in_("id", list(market_ids))
                .order("name")
                .execute()
            )
            return [market_from_row(row) for row in result.data]

        except Exception as e:
            logger.error(
                "get_markets_by_ids_failed",
                count=len(market_ids),
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: MarketCreate) -> MarketResponse:
        """
        Create a new market.

        Args:
            data: Market creation data

        Returns:
            Created MarketResponse
        """
        logger.info("creating_market", market_id=data.id, name=data.name)

        try:
            result = (
                self.db.table(self.table)
                .insert(market_to_row(data))
                .execute()
            )

            market = market_from_row(result.data[0])

        except Exception as e:
            logger.error(
                "create_market_failed",
                market_id=data.id,
                error=str(e)
            )
            raise DatabaseError("insert", str(e))

        logger.info("market_created", market_id=market.id)
        invalidation.publish(Resource.MARKET, market.id)
        return market

    def update(self, market_id: str, data: MarketUpdate) -> MarketResponse:
        """
        Update an existing market.

        Args:
            market_id: Market ID
            data: Fields to update

        Returns:
            Updated MarketResponse

        Raises:
            MarketNotFoundError: If market doesn't exist
        """
        logger.info("updating_market", market_id=market_id)

        existing = self.get_by_id(market_id)

        update_data = market_to_row(data, partial=True)
        if not update_data:
            return existing

        try:
            result = (
                self.db.table(self.table)
                .update(update_data)
                .eq("id", market_id)
                .execute()
            )

            market = market_from_row(result.data[0])

        except Exception as e:
            logger.error(
                "update_market_failed",
                market_id=market_id,
                error=str(e)
            )
            raise DatabaseError("update", str(e))

        logger.info(
            "market_updated",
            market_id=market_id,
            fields=list(update_data.keys())
        )
        invalidation.publish(Resource.MARKET, market_id)
        return market

    def delete(self, market_id: str) -> bool:
        """
        Delete a market.

        Args:
            market_id: Market ID

        Returns:
            True if deleted

        Raises:
            MarketNotFoundError: If market doesn't exist
        """
        logger.info("deleting_market", market_id=market_id)

        self.get_by_id(market_id)

        try:
            self.db.table(self.table).delete().eq("id", market_id).execute()

        except Exception as e:
            logger.error(
                "delete_market_failed",
                market_id=market_id,
                error=str(e)
            )
            raise DatabaseError("delete", str(e))

        logger.info("market_deleted", market_id=market_id)
        invalidation.publish(Resource.MARKET, market_id)
        return True

    def import_markets(self, markets: list[MarketCreate]) -> MarketImportResult:
        """
        Bulk upsert markets on id.

        Args:
            markets: Markets to insert or overwrite

        Returns:
            Counts of rows written and rows rejected
        """
        logger.info("importing_markets", count=len(markets))

        if not markets:
            return MarketImportResult(success=0, failed=0)

        rows = [market_to_row(m) for m in markets]

        try:
            result = (
                self.db.table(self.table)
                .upsert(rows, on_conflict="id")
                .execute()
            )

        except Exception as e:
            logger.error(
                "import_markets_failed",
                count=len(rows),
                error=str(e)
            )
            raise DatabaseError("upsert", str(e))

        written = len(result.data or [])
        outcome = MarketImportResult(success=written, failed=len(rows) - written)

        logger.info(
            "markets_imported",
            success=outcome.success,
            failed=outcome.failed
        )
        invalidation.publish(Resource.MARKET)
        return outcome

    # ===================
    # VISITS
    # ===================

    def record_visit(
        self,
        market_id: str,
        gebietsleiter_id: Optional[str] = None,
        today: Optional[date] = None
    ) -> VisitResult:
        """
        Count a visit at a market.

        A market is counted at most once per calendar day: a second call
        on the same day leaves the counters unchanged.

        Args:
            market_id: Visited market
            gebietsleiter_id: Visiting GL (logged only)
            today: Visit day (defaults to date.today())

        Returns:
            VisitResult with incremented=False when already visited today

        Raises:
            MarketNotFoundError: If market doesn't exist
        """
        today = today or date.today()
        market = self.get_by_id(market_id)

        if market.last_visit_date == today:
            logger.info(
                "visit_already_recorded",
                market_id=market_id,
                gebietsleiter_id=gebietsleiter_id
            )
            return VisitResult(
                market_id=market_id,
                incremented=False,
                current_visits=market.current_visits,
                last_visit_date=today,
                is_completed=market.is_completed
            )

        new_visits = market.current_visits + 1
        completed = new_visits >= market.frequency

        try:
            (
                self.db.table(self.table)
                .update({
                    "current_visits": new_visits,
                    "last_visit_date": today.isoformat(),
                    "is_completed": completed
                })
                .eq("id", market_id)
                .execute()
            )

        except Exception as e:
            logger.error(
                "record_visit_failed",
                market_id=market_id,
                error=str(e)
            )
            raise DatabaseError("update", str(e))

        logger.info(
            "visit_recorded",
            market_id=market_id,
            gebietsleiter_id=gebietsleiter_id,
            current_visits=new_visits
        )
        invalidation.publish(Resource.MARKET, market_id)
        return VisitResult(
            market_id=market_id,
            incremented=True,
            current_visits=new_visits,
            last_visit_date=today,
            is_completed=completed
        )


# Singleton instance
_market_service: Optional[MarketService] = None


def get_market_service() -> MarketService:
    """Get or create market service instance."""
    global _market_service
    if _market_service is None:
        _market_service = MarketService()
    return _market_service
