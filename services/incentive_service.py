"""
NARA incentive service.

Stores incentive submissions and reads them back with product prices,
line totals and submission totals.
"""

from collections import defaultdict
from datetime import datetime
from typing import Optional
import structlog

from config import get_supabase_client
from models.incentive import (
    IncentiveCreate,
    IncentiveCreated,
    IncentiveGroup,
    IncentiveItem,
    IncentiveSubmission,
)
from exceptions import IncentiveNotFoundError, DatabaseError
from services import invalidation
from services.invalidation import Resource

logger = structlog.get_logger(__name__)


class IncentiveService:
    """NARA incentive business logic."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "nara_incentive_submissions"
        self.items_table = "nara_incentive_items"

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(self, gebietsleiter_id: Optional[str] = None) -> list[IncentiveSubmission]:
        """
        Get incentive submissions, newest first.

        Args:
            gebietsleiter_id: Only submissions of this GL

        Returns:
            Submissions with priced lines
        """
        logger.info("getting_incentives", gebietsleiter_id=gebietsleiter_id)

        try:
            query = self.db.table(self.table).select("*")
            if gebietsleiter_id:
                query = query.eq("gebietsleiter_id", gebietsleiter_id)
            result = query.order("created_at", desc=True).execute()
        except Exception as e:
            logger.error("get_incentives_failed", error=str(e))
            raise DatabaseError("select", str(e))

        submissions = self._with_details(result.data)
        logger.info("incentives_retrieved", count=len(submissions))
        return submissions

    def group_by_market_day(
        self,
        gebietsleiter_id: Optional[str] = None
    ) -> list[IncentiveGroup]:
        """
        Merge submissions of the same market on the same calendar day.

        Returns:
            Groups, newest day first
        """
        groups: dict[tuple, IncentiveGroup] = {}
        for submission in self.get_all(gebietsleiter_id):
            day = (submission.created_at or datetime.now()).date()
            key = (submission.market_id, day)
            group = groups.get(key)
            if group is None:
                group = IncentiveGroup(
                    market_id=submission.market_id,
                    market_name=submission.market_name,
                    market_chain=submission.market_chain,
                    day=day,
                )
                groups[key] = group
            if submission.gebietsleiter_id not in group.gebietsleiter_ids:
                group.gebietsleiter_ids.append(submission.gebietsleiter_id)
            group.submission_ids.append(submission.id)
            group.items.extend(submission.items)

        return sorted(groups.values(), key=lambda g: (g.day, g.market_name), reverse=True)

    def _lookup(self, table: str, ids: set) -> dict[str, dict]:
        if not ids:
            return {}
        try:
            result = self.db.table(table).select("*").in_("id", list(ids)).execute()
        except Exception as e:
            logger.error("lookup_failed", table=table, error=str(e))
            raise DatabaseError("select", str(e))
        return {str(row["id"]): row for row in result.data}

    def _with_details(self, rows: list[dict]) -> list[IncentiveSubmission]:
        if not rows:
            return []

        try:
            item_rows = (
                self.db.table(self.items_table)
                .select("*")
                .in_("submission_id", [row["id"] for row in rows])
                .execute()
                .data
            )
        except Exception as e:
            logger.error("get_incentive_items_failed", error=str(e))
            raise DatabaseError("select", str(e))

        gls = self._lookup("gebietsleiter", {row["gebietsleiter_id"] for row in rows})
        markets = self._lookup("markets", {row["market_id"] for row in rows})
        products = self._lookup("products", {row["product_id"] for row in item_rows})

        items_by_submission = defaultdict(list)
        for row in item_rows:
            product = products.get(str(row["product_id"]), {})
            items_by_submission[row["submission_id"]].append(IncentiveItem(
                id=str(row["id"]),
                product_id=str(row["product_id"]),
                product_name=product.get("name") or "Unbekannt",
                product_weight=product.get("weight") or "",
                product_price=float(product.get("price") or 0),
                quantity=row.get("quantity") or 1,
            ))

        submissions = []
        for row in rows:
            market = markets.get(str(row["market_id"]), {})
            submissions.append(IncentiveSubmission(
                id=str(row["id"]),
                gebietsleiter_id=str(row["gebietsleiter_id"]),
                gl_name=gls.get(str(row["gebietsleiter_id"]), {}).get("name") or "Unbekannt",
                market_id=str(row["market_id"]),
                market_name=market.get("name") or "Unbekannt",
                market_chain=market.get("chain") or "",
                market_address=market.get("address") or "",
                market_city=market.get("city") or "",
                items=items_by_submission[row["id"]],
                created_at=row.get("created_at"),
            ))
        return submissions

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: IncentiveCreate) -> IncentiveCreated:
        """
        Store a NARA submission with its lines.

        Returns:
            New submission id and number of lines written
        """
        logger.info(
            "creating_incentive",
            gebietsleiter_id=data.gebietsleiter_id,
            market_id=data.market_id,
            items=len(data.items)
        )

        try:
            result = self.db.table(self.table).insert({
                "gebietsleiter_id": data.gebietsleiter_id,
                "market_id": data.market_id,
            }).execute()
            submission_id = str(result.data[0]["id"])

            self.db.table(self.items_table).insert([
                {
                    "submission_id": submission_id,
                    "product_id": line.product_id,
                    "quantity": line.quantity,
                }
                for line in data.items
            ]).execute()

        except Exception as e:
            logger.error("create_incentive_failed", error=str(e))
            raise DatabaseError("insert", str(e))

        logger.info("incentive_created", submission_id=submission_id)
        invalidation.publish(Resource.INCENTIVE, submission_id)
        return IncentiveCreated(id=submission_id, items_count=len(data.items))

    def delete(self, submission_id: str) -> bool:
        """
        Delete a submission and its lines.

        Raises:
            IncentiveNotFoundError: If the submission doesn't exist
        """
        logger.info("deleting_incentive", submission_id=submission_id)

        try:
            existing = (
                self.db.table(self.table)
                .select("id")
                .eq("id", submission_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_incentive_failed", submission_id=submission_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not existing.data:
            raise IncentiveNotFoundError(submission_id)

        try:
            self.db.table(self.items_table).delete().eq("submission_id", submission_id).execute()
            self.db.table(self.table).delete().eq("id", submission_id).execute()
        except Exception as e:
            logger.error("delete_incentive_failed", submission_id=submission_id, error=str(e))
            raise DatabaseError("delete", str(e))

        invalidation.publish(Resource.INCENTIVE, submission_id)
        return True


# Singleton instance
_incentive_service: Optional[IncentiveService] = None


def get_incentive_service() -> IncentiveService:
    """Get or create incentive service instance."""
    global _incentive_service
    if _incentive_service is None:
        _incentive_service = IncentiveService()
    return _incentive_service
