"""
Wave (Welle) service for business logic operations.

Handles wave CRUD with item collections, batch pre-order submissions,
cumulative GL progress and delivery photos.
"""

from collections import defaultdict
from datetime import date
from typing import Optional
import structlog

from config import get_supabase_client
from models.wave import (
    ItemType,
    WaveCreate,
    WaveUpdate,
    WaveResponse,
    WaveItem,
    WaveBundle,
    WaveBundleLine,
    KwDay,
    PhotoTag,
    SubmissionBatch,
    BatchResult,
    GLProgress,
    WaveProgressEntry,
    WaveSubmission,
    SubmissionUpdate,
    PendingDeliveryPhoto,
    derive_wave_status,
    submission_from_row,
    WAVE_MAPPER,
    WAVE_ITEM_MAPPER,
    WAVE_BUNDLE_MAPPER,
    WAVE_BUNDLE_LINE_MAPPER,
)
from exceptions import (
    WaveNotFoundError,
    SubmissionNotFoundError,
    ValidationError,
    DatabaseError,
)
from services import invalidation
from services.invalidation import Resource
from services.photo_storage import PhotoStorage

logger = structlog.get_logger(__name__)


# item type -> (table, order column, WaveResponse attribute)
ITEM_TABLES = {
    ItemType.DISPLAY: ("wellen_displays", "display_order", "displays"),
    ItemType.KARTONWARE: ("wellen_kartonware", "kartonware_order", "kartonware_items"),
    ItemType.EINZELPRODUKT: ("wellen_einzelprodukte", "einzelprodukt_order", "einzelprodukt_items"),
}

# item type -> (bundle table, line table, parent column, WaveResponse attribute)
BUNDLE_TABLES = {
    ItemType.PALETTE: ("wellen_paletten", "wellen_paletten_products", "palette_id", "palette_items"),
    ItemType.SCHUETTE: ("wellen_schuetten", "wellen_schuetten_products", "schuette_id", "schuette_items"),
}

PROGRESS_CONFLICT = "welle_id,gebietsleiter_id,item_type,item_id"


class WaveService:
    """
    Wave business logic.

    Reads assemble a wave from its child tables; writes replace child
    collections wholesale.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "wellen"
        self.submissions_table = "wellen_submissions"
        self.progress_table = "wellen_gl_progress"
        self.storage = PhotoStorage()

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(
        self,
        status: Optional[str] = None,
        market_id: Optional[str] = None,
        today: Optional[date] = None
    ) -> list[WaveResponse]:
        """
        Get all waves, newest first.

        Args:
            status: Only waves with this derived status (upcoming/active/past)
            market_id: Only waves assigned to this market
            today: Reference day for the status (defaults to date.today())

        Returns:
            List of waves with collections and progress
        """
        logger.info("getting_waves", status=status, market_id=market_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error("get_waves_failed", error=str(e))
            raise DatabaseError("select", str(e))

        waves = self._with_details(result.data, today=today)

        if status:
            waves = [w for w in waves if w.status.value == status]
        if market_id:
            waves = [w for w in waves if market_id in w.assigned_market_ids]

        logger.info("waves_retrieved", count=len(waves))
        return waves

    def get_by_id(self, wave_id: str, today: Optional[date] = None) -> WaveResponse:
        """
        Get a single wave with all collections.

        Args:
            wave_id: Wave UUID
            today: Reference day for the status

        Returns:
            WaveResponse

        Raises:
            WaveNotFoundError: If wave doesn't exist
        """
        logger.debug("getting_wave", wave_id=wave_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", wave_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_wave_failed", wave_id=wave_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise WaveNotFoundError(wave_id)

        return self._with_details(result.data, today=today)[0]

    def _select_in(self, table: str, column: str, values: list[str]) -> list[dict]:
        """Rows of table whose column is in values."""
        if not values:
            return []
        try:
            return self.db.table(table).select("*").in_(column, values).execute().data
        except Exception as e:
            logger.error("select_children_failed", table=table, error=str(e))
            raise DatabaseError("select", str(e))

    def _with_details(self, rows: list[dict], today: Optional[date] = None) -> list[WaveResponse]:
        """Attach child collections and summed progress to wave rows."""
        ids = [row["id"] for row in rows]
        if not ids:
            return []

        progress = self._select_in(self.progress_table, "welle_id", ids)
        current = defaultdict(int)
        gls = defaultdict(set)
        for p in progress:
            current[(p["welle_id"], p["item_type"], str(p["item_id"]))] += p.get("current_number") or 0
            gls[p["welle_id"]].add(p["gebietsleiter_id"])

        children = defaultdict(lambda: defaultdict(list))

        for item_type, (table, order_col, attr) in ITEM_TABLES.items():
            item_rows = sorted(
                self._select_in(table, "welle_id", ids),
                key=lambda r: r.get(order_col) or 0
            )
            for r in item_rows:
                item = WAVE_ITEM_MAPPER.from_row(r)
                item["current_number"] = current[(r["welle_id"], item_type.value, str(r["id"]))]
                children[r["welle_id"]][attr].append(WaveItem.model_validate(item))

        for item_type, (table, line_table, parent_col, attr) in BUNDLE_TABLES.items():
            bundle_rows = self._select_in(table, "welle_id", ids)
            line_rows = self._select_in(line_table, parent_col, [r["id"] for r in bundle_rows])
            lines_by_bundle = defaultdict(list)
            for line in line_rows:
                lines_by_bundle[line[parent_col]].append(line)

            for r in bundle_rows:
                bundle = WAVE_BUNDLE_MAPPER.from_row(r)
                bundle["products"] = []
                for line in lines_by_bundle[r["id"]]:
                    data = WAVE_BUNDLE_LINE_MAPPER.from_row(line)
                    data["current_number"] = current[(r["welle_id"], item_type.value, str(line["id"]))]
                    bundle["products"].append(WaveBundleLine.model_validate(data))
                children[r["welle_id"]][attr].append(WaveBundle.model_validate(bundle))

        for r in self._select_in("wellen_kw_days", "welle_id", ids):
            children[r["welle_id"]]["kw_days"].append(
                (r.get("kw_order") or 0, KwDay(kw=r["kw"], days=r.get("days") or []))
            )
        for r in self._select_in("wellen_markets", "welle_id", ids):
            children[r["welle_id"]]["assigned_market_ids"].append(r["market_id"])
        for r in self._select_in("wellen_photo_tags", "welle_id", ids):
            children[r["welle_id"]]["photo_tags"].append(
                PhotoTag(name=r["tag_name"], tag_type=r.get("tag_type") or "optional")
            )

        waves = []
        for row in rows:
            data = WAVE_MAPPER.from_row(row)
            extra = children[row["id"]]
            for attr in (
                "displays", "kartonware_items", "einzelprodukt_items",
                "palette_items", "schuette_items", "assigned_market_ids", "photo_tags"
            ):
                data[attr] = extra.get(attr, [])
            data["kw_days"] = [kw for _, kw in sorted(extra.get("kw_days", []), key=lambda x: x[0])]
            data["status"] = derive_wave_status(
                date.fromisoformat(str(row["start_date"])[:10]),
                date.fromisoformat(str(row["end_date"])[:10]),
                today
            )
            data["types"] = [
                item_type for item_type, attr in (
                    (ItemType.DISPLAY, "displays"),
                    (ItemType.KARTONWARE, "kartonware_items"),
                    (ItemType.EINZELPRODUKT, "einzelprodukt_items"),
                    (ItemType.PALETTE, "palette_items"),
                    (ItemType.SCHUETTE, "schuette_items"),
                ) if data[attr]
            ]
            data["participating_gls"] = len(gls[row["id"]])
            data["created_at"] = row.get("created_at")
            data["updated_at"] = row.get("updated_at")
            waves.append(WaveResponse.model_validate(data))

        return waves

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: WaveCreate) -> WaveResponse:
        """
        Create a wave with all its collections.

        Args:
            data: Wave creation data

        Returns:
            Created WaveResponse
        """
        logger.info("creating_wave", name=data.name)

        row = WAVE_MAPPER.to_row(data.model_dump(mode="json"))
        row.pop("id", None)
        row["status"] = derive_wave_status(data.start_date, data.end_date).value
        if data.goal_type.value == "percentage":
            row["goal_value"] = None
        else:
            row["goal_percentage"] = None

        try:
            result = self.db.table(self.table).insert(row).execute()
            wave_id = result.data[0]["id"]
        except Exception as e:
            logger.error("create_wave_failed", name=data.name, error=str(e))
            raise DatabaseError("insert", str(e))

        self._insert_children(wave_id, data, set(data.model_fields_set) | {
            "displays", "kartonware_items", "einzelprodukt_items", "palette_items",
            "schuette_items", "kw_days", "assigned_market_ids", "photo_tags"
        })

        logger.info("wave_created", wave_id=wave_id)
        invalidation.publish(Resource.WAVE, wave_id)
        return self.get_by_id(wave_id)

    def _insert_children(self, wave_id: str, data, fields: set[str]) -> None:
        """Insert the collections named in fields."""
        try:
            for item_type, (table, order_col, attr) in ITEM_TABLES.items():
                items = getattr(data, attr, None)
                if attr in fields and items:
                    self.db.table(table).insert([
                        {
                            "welle_id": wave_id,
                            **{k: v for k, v in WAVE_ITEM_MAPPER.to_row(item.model_dump(mode="json")).items()
                               if k != "id"},
                            order_col: index,
                        }
                        for index, item in enumerate(items)
                    ]).execute()

            for item_type, (table, line_table, parent_col, attr) in BUNDLE_TABLES.items():
                bundles = getattr(data, attr, None)
                if attr not in fields or not bundles:
                    continue
                for bundle in bundles:
                    bundle_row = WAVE_BUNDLE_MAPPER.to_row(bundle.model_dump(mode="json"))
                    bundle_row.pop("id", None)
                    bundle_row["welle_id"] = wave_id
                    created = self.db.table(table).insert(bundle_row).execute()
                    bundle_id = created.data[0]["id"]
                    if bundle.products:
                        line_rows = []
                        for line in bundle.products:
                            line_row = WAVE_BUNDLE_LINE_MAPPER.to_row(line.model_dump(mode="json"))
                            line_row.pop("id", None)
                            line_row[parent_col] = bundle_id
                            line_rows.append(line_row)
                        self.db.table(line_table).insert(line_rows).execute()

            if "kw_days" in fields and data.kw_days:
                self.db.table("wellen_kw_days").insert([
                    {"welle_id": wave_id, "kw": kw.kw, "days": kw.days, "kw_order": index}
                    for index, kw in enumerate(data.kw_days)
                ]).execute()

            if "assigned_market_ids" in fields and data.assigned_market_ids:
                self.db.table("wellen_markets").insert([
                    {"welle_id": wave_id, "market_id": market_id}
                    for market_id in data.assigned_market_ids
                ]).execute()

            photo_tags = getattr(data, "photo_tags", None)
            if "photo_tags" in fields and photo_tags:
                self.db.table("wellen_photo_tags").insert([
                    {"welle_id": wave_id, "tag_name": tag.name, "tag_type": tag.tag_type.value}
                    for tag in photo_tags
                ]).execute()

        except Exception as e:
            logger.error("insert_wave_children_failed", wave_id=wave_id, error=str(e))
            raise DatabaseError("insert", str(e))

    def update(self, wave_id: str, data: WaveUpdate) -> WaveResponse:
        """
        Update a wave.

        Scalar fields are patched. Each collection present in the update
        replaces the stored collection.

        Args:
            wave_id: Wave UUID
            data: Fields to update

        Returns:
            Updated WaveResponse

        Raises:
            WaveNotFoundError: If wave doesn't exist
        """
        logger.info("updating_wave", wave_id=wave_id)

        existing = self.get_by_id(wave_id)
        fields = set(data.model_fields_set)

        row = WAVE_MAPPER.to_row(data.model_dump(mode="json", exclude_unset=True), partial=True)
        start = data.start_date or existing.start_date
        end = data.end_date or existing.end_date
        if end < start:
            raise ValidationError(
                "Das Enddatum darf nicht vor dem Startdatum liegen.",
                details={"start_date": str(start), "end_date": str(end)}
            )
        if "start_date" in fields or "end_date" in fields:
            row["status"] = derive_wave_status(start, end).value

        try:
            if row:
                self.db.table(self.table).update(row).eq("id", wave_id).execute()

            for _, (table, _, attr) in ITEM_TABLES.items():
                if attr in fields:
                    self.db.table(table).delete().eq("welle_id", wave_id).execute()
            if "kw_days" in fields:
                self.db.table("wellen_kw_days").delete().eq("welle_id", wave_id).execute()
            if "assigned_market_ids" in fields:
                self.db.table("wellen_markets").delete().eq("welle_id", wave_id).execute()

        except Exception as e:
            logger.error("update_wave_failed", wave_id=wave_id, error=str(e))
            raise DatabaseError("update", str(e))

        self._insert_children(wave_id, data, fields)

        logger.info("wave_updated", wave_id=wave_id, fields=sorted(fields))
        invalidation.publish(Resource.WAVE, wave_id)
        return self.get_by_id(wave_id)

    def delete(self, wave_id: str) -> bool:
        """
        Delete a wave (child rows cascade).

        Raises:
            WaveNotFoundError: If wave doesn't exist
        """
        logger.info("deleting_wave", wave_id=wave_id)

        self.get_by_id(wave_id)

        try:
            self.db.table(self.table).delete().eq("id", wave_id).execute()
        except Exception as e:
            logger.error("delete_wave_failed", wave_id=wave_id, error=str(e))
            raise DatabaseError("delete", str(e))

        logger.info("wave_deleted", wave_id=wave_id)
        invalidation.publish(Resource.WAVE, wave_id)
        return True

    # ===================
    # SUBMISSIONS & PROGRESS
    # ===================

    def submit_batch(self, wave_id: str, batch: SubmissionBatch) -> BatchResult:
        """
        Persist one pre-order batch.

        Writes one submission row per line with quantity > 0, then adds
        the quantities onto the GL's progress rows (cumulative). If the
        progress update fails the inserted rows are deleted again, so a
        failed batch can be retried without duplicates.

        Args:
            wave_id: Wave UUID
            batch: GL, market and lines

        Returns:
            IDs of the created submission rows and number of progress rows touched

        Raises:
            ValidationError: If no line has a quantity > 0
        """
        items = batch.positive_items
        logger.info(
            "submitting_batch",
            wave_id=wave_id,
            gebietsleiter_id=batch.gebietsleiter_id,
            market_id=batch.market_id,
            lines=len(items),
            dropped=len(batch.items) - len(items)
        )

        if not items:
            raise ValidationError(
                "Bitte gib mindestens eine Menge größer 0 ein.",
                code="EMPTY_SUBMISSION"
            )

        rows = [
            {
                "welle_id": wave_id,
                "gebietsleiter_id": batch.gebietsleiter_id,
                "market_id": batch.market_id,
                "item_type": item.item_type.value,
                "item_id": item.item_id,
                "quantity": item.quantity,
                "value_per_unit": item.value_per_unit,
                "photo_url": batch.photo_url,
            }
            for item in items
        ]

        try:
            inserted = self.db.table(self.submissions_table).insert(rows).execute()
        except Exception as e:
            logger.error("insert_submissions_failed", wave_id=wave_id, error=str(e))
            raise DatabaseError("insert", str(e))

        added = defaultdict(int)
        for item in items:
            added[(item.item_type.value, item.item_id)] += item.quantity

        submission_ids = [str(r["id"]) for r in inserted.data]
        try:
            updated = self._add_progress(wave_id, batch.gebietsleiter_id, added)
        except DatabaseError:
            self._discard_submissions(wave_id, submission_ids)
            raise

        logger.info(
            "batch_submitted",
            wave_id=wave_id,
            submissions=len(submission_ids),
            progress_rows=updated
        )
        invalidation.publish(Resource.WAVE, wave_id)
        return BatchResult(submission_ids=submission_ids, items_updated=updated)

    def _discard_submissions(self, wave_id: str, submission_ids: list[str]) -> None:
        """Remove the rows of a batch whose progress update failed."""
        try:
            (
                self.db.table(self.submissions_table)
                .delete()
                .in_("id", submission_ids)
                .execute()
            )
            logger.warning("batch_rolled_back", wave_id=wave_id, submissions=len(submission_ids))
        except Exception as e:
            logger.error(
                "batch_rollback_failed",
                wave_id=wave_id,
                submission_ids=submission_ids,
                error=str(e)
            )

    def _add_progress(self, wave_id: str, gl_id: str, added: dict) -> int:
        """Add quantities onto existing progress rows and upsert them."""
        try:
            existing = (
                self.db.table(self.progress_table)
                .select("item_type, item_id, current_number")
                .eq("welle_id", wave_id)
                .eq("gebietsleiter_id", gl_id)
                .execute()
            )
            current = {
                (p["item_type"], str(p["item_id"])): p.get("current_number") or 0
                for p in existing.data
            }

            entries = [
                {
                    "welle_id": wave_id,
                    "gebietsleiter_id": gl_id,
                    "item_type": item_type,
                    "item_id": item_id,
                    "current_number": max(0, current.get((item_type, item_id), 0) + quantity),
                }
                for (item_type, item_id), quantity in added.items()
            ]

            self.db.table(self.progress_table).upsert(
                entries,
                on_conflict=PROGRESS_CONFLICT
            ).execute()

        except Exception as e:
            logger.error("update_progress_failed", wave_id=wave_id, error=str(e))
            raise DatabaseError("upsert", str(e))

        return len(entries)

    def get_gl_progress(self, wave_id: str, gebietsleiter_id: str) -> list[GLProgress]:
        """Cumulative progress rows of one GL on one wave."""
        try:
            result = (
                self.db.table(self.progress_table)
                .select("*")
                .eq("welle_id", wave_id)
                .eq("gebietsleiter_id", gebietsleiter_id)
                .execute()
            )
            return [GLProgress.model_validate(row) for row in result.data]

        except Exception as e:
            logger.error("get_progress_failed", wave_id=wave_id, error=str(e))
            raise DatabaseError("select", str(e))

    def get_all_progress(self, wave_id: str) -> list[WaveProgressEntry]:
        """
        Progress rows of every GL on a wave, newest first.

        Each row carries the GL name, the market of the GL's latest
        submission of that item, the item name and the value
        (quantity x unit value).

        Raises:
            WaveNotFoundError: If the wave doesn't exist
        """
        wave = self.get_by_id(wave_id)

        try:
            progress = (
                self.db.table(self.progress_table)
                .select("*")
                .eq("welle_id", wave_id)
                .order("updated_at", desc=True)
                .execute()
                .data
            )
            submissions = (
                self.db.table(self.submissions_table)
                .select("gebietsleiter_id, market_id, item_type, item_id, created_at")
                .eq("welle_id", wave_id)
                .order("created_at", desc=True)
                .execute()
                .data
            )
        except Exception as e:
            logger.error("get_all_progress_failed", wave_id=wave_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not progress:
            return []

        # newest submission wins
        latest_market = {}
        for row in submissions:
            key = (str(row["gebietsleiter_id"]), row["item_type"], str(row["item_id"]))
            latest_market.setdefault(key, str(row["market_id"]))

        gl_ids = list({str(p["gebietsleiter_id"]) for p in progress})
        gls = {str(r["id"]): r for r in self._select_in("gebietsleiter", "id", gl_ids)}
        markets = {
            str(r["id"]): r
            for r in self._select_in("markets", "id", list(set(latest_market.values())))
        }
        names = item_names(wave)
        values = item_values(wave)

        entries = []
        for row in progress:
            gl_id = str(row["gebietsleiter_id"])
            item_type = ItemType(row["item_type"])
            item_id = str(row["item_id"])
            market_id = latest_market.get((gl_id, item_type.value, item_id))
            market = markets.get(market_id, {})
            quantity = row.get("current_number") or 0
            entries.append(WaveProgressEntry(
                id=str(row["id"]) if row.get("id") else None,
                gebietsleiter_id=gl_id,
                gl_name=gls.get(gl_id, {}).get("name") or "Unknown",
                market_id=market_id,
                market_name=market.get("name") or "Unknown",
                market_chain=market.get("chain") or "",
                item_type=item_type,
                item_id=item_id,
                item_name=names.get((item_type, item_id)) or "Unknown",
                quantity=quantity,
                value=round(quantity * values.get((item_type, item_id), 0.0), 2),
                updated_at=row.get("updated_at"),
            ))

        logger.info("all_progress_loaded", wave_id=wave_id, rows=len(entries))
        return entries

    def get_submissions_for_gl(
        self,
        gebietsleiter_id: str,
        wave_id: Optional[str] = None
    ) -> list[WaveSubmission]:
        """
        Submission rows of one GL, newest first.

        Args:
            gebietsleiter_id: GL UUID
            wave_id: Restrict to one wave
        """
        try:
            query = (
                self.db.table(self.submissions_table)
                .select("*")
                .eq("gebietsleiter_id", gebietsleiter_id)
            )
            if wave_id:
                query = query.eq("welle_id", wave_id)
            result = query.order("created_at", desc=True).execute()
            return [submission_from_row(row) for row in result.data]

        except Exception as e:
            logger.error(
                "get_submissions_failed",
                gebietsleiter_id=gebietsleiter_id,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    def _get_submission(self, submission_id: str) -> WaveSubmission:
        try:
            result = (
                self.db.table(self.submissions_table)
                .select("*")
                .eq("id", submission_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_submission_failed", submission_id=submission_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise SubmissionNotFoundError(submission_id)
        return submission_from_row(result.data[0])

    def update_submission(self, submission_id: str, data: SubmissionUpdate) -> WaveSubmission:
        """
        Correct a submission line.

        A quantity change is applied to the GL's progress as a delta.

        Raises:
            SubmissionNotFoundError: If the row doesn't exist
        """
        logger.info("updating_submission", submission_id=submission_id)

        existing = self._get_submission(submission_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            return existing

        try:
            result = (
                self.db.table(self.submissions_table)
                .update(update_data)
                .eq("id", submission_id)
                .execute()
            )
            submission = submission_from_row(result.data[0])
        except Exception as e:
            logger.error("update_submission_failed", submission_id=submission_id, error=str(e))
            raise DatabaseError("update", str(e))

        delta = submission.quantity - existing.quantity
        if delta:
            self._add_progress(
                existing.welle_id,
                existing.gebietsleiter_id,
                {(existing.item_type.value, existing.item_id): delta}
            )

        invalidation.publish(Resource.WAVE, existing.welle_id)
        return submission

    def delete_submission(self, submission_id: str) -> bool:
        """
        Delete a submission line and take its quantity off the progress.

        Raises:
            SubmissionNotFoundError: If the row doesn't exist
        """
        logger.info("deleting_submission", submission_id=submission_id)

        existing = self._get_submission(submission_id)

        try:
            self.db.table(self.submissions_table).delete().eq("id", submission_id).execute()
        except Exception as e:
            logger.error("delete_submission_failed", submission_id=submission_id, error=str(e))
            raise DatabaseError("delete", str(e))

        self._add_progress(
            existing.welle_id,
            existing.gebietsleiter_id,
            {(existing.item_type.value, existing.item_id): -existing.quantity}
        )

        invalidation.publish(Resource.WAVE, existing.welle_id)
        return True

    # ===================
    # PHOTOS
    # ===================

    def get_pending_delivery_photos(self, market_id: str) -> list[PendingDeliveryPhoto]:
        """
        Submission lines at a market still waiting for a delivery photo.

        Args:
            market_id: Market ID

        Returns:
            Pending obligations, oldest first, with wave and item names
        """
        logger.debug("getting_pending_delivery_photos", market_id=market_id)

        try:
            result = (
                self.db.table(self.submissions_table)
                .select("*")
                .eq("market_id", market_id)
                .is_("delivery_photo_url", "null")
                .order("created_at")
                .execute()
            )
        except Exception as e:
            logger.error("get_pending_photos_failed", market_id=market_id, error=str(e))
            raise DatabaseError("select", str(e))

        submissions = [submission_from_row(row) for row in result.data]
        if not submissions:
            return []

        names = {}
        wave_names = {}
        for wave_id in {s.welle_id for s in submissions}:
            try:
                wave = self.get_by_id(wave_id)
            except WaveNotFoundError:
                continue
            wave_names[wave_id] = wave.name
            names.update(item_names(wave))

        pending = [
            PendingDeliveryPhoto(
                submission_id=s.id,
                welle_id=s.welle_id,
                welle_name=wave_names.get(s.welle_id),
                item_type=s.item_type,
                item_id=s.item_id,
                item_name=names.get((s.item_type, s.item_id)),
                quantity=s.quantity,
                created_at=s.created_at,
            )
            for s in submissions
        ]

        logger.info("pending_delivery_photos", market_id=market_id, count=len(pending))
        return pending

    def upload_delivery_photo(self, submission_ids: list[str], photo: str) -> tuple[str, int]:
        """
        Attach one delivery photo to several submission lines.

        Args:
            submission_ids: Lines the photo documents
            photo: Data URL or URL

        Returns:
            Tuple of (photo URL, number of rows updated)
        """
        logger.info("uploading_delivery_photo", count=len(submission_ids))

        url = self.storage.store(photo, "delivery")

        try:
            result = (
                self.db.table(self.submissions_table)
                .update({"delivery_photo_url": url})
                .in_("id", submission_ids)
                .execute()
            )
        except Exception as e:
            logger.error("attach_delivery_photo_failed", error=str(e))
            raise DatabaseError("update", str(e))

        updated = len(result.data or [])
        logger.info("delivery_photo_attached", updated=updated)
        return url, updated

    def upload_delivery_photos_per_item(self, photos: list[tuple[str, str]]) -> int:
        """
        Attach one photo per submission line.

        Args:
            photos: (submission_id, photo) pairs

        Returns:
            Number of rows updated
        """
        updated = 0
        for submission_id, photo in photos:
            _, count = self.upload_delivery_photo([submission_id], photo)
            updated += count
        return updated

    def upload_submission_photo(
        self,
        wave_id: str,
        gebietsleiter_id: str,
        market_id: str,
        photo: str,
        submission_ids: Optional[list[str]] = None,
        tags: Optional[list[str]] = None
    ) -> str:
        """
        Store the completion photo of a batch.

        Args:
            wave_id: Wave UUID
            gebietsleiter_id: GL UUID
            market_id: Market ID
            photo: Data URL or URL
            submission_ids: Lines created by the batch
            tags: Selected photo tags

        Returns:
            Public photo URL
        """
        logger.info("uploading_submission_photo", wave_id=wave_id, market_id=market_id)

        url = self.storage.store(photo, f"submissions/{wave_id}")

        try:
            self.db.table("wellen_photos").insert({
                "welle_id": wave_id,
                "gebietsleiter_id": gebietsleiter_id,
                "market_id": market_id,
                "photo_url": url,
                "tags": tags or [],
            }).execute()

            if submission_ids:
                (
                    self.db.table(self.submissions_table)
                    .update({"photo_url": url})
                    .in_("id", submission_ids)
                    .execute()
                )
        except Exception as e:
            logger.error("attach_submission_photo_failed", wave_id=wave_id, error=str(e))
            raise DatabaseError("insert", str(e))

        return url


def item_names(wave: WaveResponse) -> dict[tuple[ItemType, str], str]:
    """(item type, item id) -> display name for every orderable line of a wave."""
    names = {}
    for item_type, (_, _, attr) in ITEM_TABLES.items():
        for item in getattr(wave, attr):
            names[(item_type, item.id)] = item.name
    for item_type, (_, _, _, attr) in BUNDLE_TABLES.items():
        for bundle in getattr(wave, attr):
            for line in bundle.products:
                names[(item_type, line.id)] = f"{bundle.name}: {line.name}"
    return names


def item_values(wave: WaveResponse) -> dict[tuple[ItemType, str], float]:
    """(item type, item id) -> unit value; item value or value per VE for bundle lines."""
    values = {}
    for item_type, (_, _, attr) in ITEM_TABLES.items():
        for item in getattr(wave, attr):
            values[(item_type, item.id)] = item.item_value or 0.0
    for item_type, (_, _, _, attr) in BUNDLE_TABLES.items():
        for bundle in getattr(wave, attr):
            for line in bundle.products:
                values[(item_type, line.id)] = line.value_per_ve
    return values


# Singleton instance
_wave_service: Optional[WaveService] = None


def get_wave_service() -> WaveService:
    """Get or create wave service instance."""
    global _wave_service
    if _wave_service is None:
        _wave_service = WaveService()
    return _wave_service
