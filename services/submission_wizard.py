"""
Pre-order (Vorbesteller) submission wizard.

Drives one GL through target, market, pending delivery photos, item
quantities and the optional completion photo, then saves everything
with a single batch call.

Example:
    wizard = SubmissionWizard(gebietsleiter_id="gl-1")
    wizard.select_target(wave)
    wizard.continue_()
    wizard.select_market(market)
    wizard.continue_()
    wizard.adjust_quantity(key, +2)
    wizard.continue_()       # saves the batch
"""

from datetime import date
from typing import Optional
import structlog

from config import settings
from models.market import MarketResponse
from models.wave import BatchResult, SubmissionBatch, WaveResponse
from models.wizard import (
    PendingPhotoResolution,
    VisitChoice,
    WizardAction,
    WizardContext,
    WizardState,
    can_advance,
    next_state,
)
from exceptions import (
    AppError,
    InvalidTransitionError,
    SubmissionFailedError,
    SubmissionInProgressError,
    ValidationError,
    WizardGuardError,
)
from services import selection_service
from services.market_service import MarketService, get_market_service
from services.wave_service import WaveService, get_wave_service

logger = structlog.get_logger(__name__)


class SubmissionWizard:
    """
    State holder for one pre-order session.

    Attributes:
        state: Current wizard step
        ctx: Selected wave/market, quantities, photo and visit choice
        submitting: Set while the batch call runs
        result: Batch result after SUCCESS
    """

    def __init__(
        self,
        gebietsleiter_id: str,
        wave_service: Optional[WaveService] = None,
        market_service: Optional[MarketService] = None,
        today: Optional[date] = None
    ):
        self.gebietsleiter_id = gebietsleiter_id
        self._wave_service = wave_service
        self._market_service = market_service
        self.today = today
        self._reset()

    def _reset(self) -> None:
        self.state = WizardState.SELECTING_TARGET
        self.ctx = WizardContext(
            gebietsleiter_id=self.gebietsleiter_id,
            today=self.today,
            recency_days=settings.visit_recency_days,
        )
        self.photo_tags: list[str] = []
        self.submitting = False
        self.result: Optional[BatchResult] = None
        self.visit_recorded = False

    @property
    def wave_service(self) -> WaveService:
        if self._wave_service is None:
            self._wave_service = get_wave_service()
        return self._wave_service

    @property
    def market_service(self) -> MarketService:
        if self._market_service is None:
            self._market_service = get_market_service()
        return self._market_service

    def _require(self, *states: WizardState, action: str) -> None:
        if self.state not in states:
            raise InvalidTransitionError(self.state.value, action)

    # ===================
    # INPUT
    # ===================

    def select_target(self, wave: WaveResponse) -> None:
        """Pick the wave; resets quantities to its candidates."""
        self._require(WizardState.SELECTING_TARGET, action="select_target")
        self.ctx.wave = wave
        self.ctx.selection = selection_service.new_snapshot(wave)

    def select_market(self, market: MarketResponse) -> None:
        """Pick the market; clears a visit choice made for another market."""
        self._require(WizardState.SELECTING_MARKET, action="select_market")
        if self.ctx.market is None or self.ctx.market.id != market.id:
            self.ctx.visit_choice = None
            self.ctx.pending_photos = []
            self.ctx.pending_resolutions = {}
        self.ctx.market = market

    def attach_pending_photo(self, submission_id: str, photo: str) -> None:
        """
        Photograph one pending delivery and close the obligation.

        Args:
            submission_id: Pending submission line
            photo: Data URL or URL

        Raises:
            ValidationError: If the id is not pending at this market
            ExternalServiceError: If the upload fails (obligation stays open)
        """
        self._require(WizardState.CHECKING_PENDING_PHOTOS, action="attach_pending_photo")
        self._require_pending(submission_id)
        self.wave_service.upload_delivery_photo([submission_id], photo)
        self.ctx.pending_resolutions[submission_id] = PendingPhotoResolution.PHOTOGRAPHED

    def skip_pending_photo(self, submission_id: str) -> None:
        """Leave one pending delivery without photo for now."""
        self._require(WizardState.CHECKING_PENDING_PHOTOS, action="skip_pending_photo")
        self._require_pending(submission_id)
        self.ctx.pending_resolutions[submission_id] = PendingPhotoResolution.SKIPPED

    def _require_pending(self, submission_id: str) -> None:
        if submission_id not in {p.submission_id for p in self.ctx.pending_photos}:
            raise ValidationError(
                "Diese Lieferung ist nicht offen.",
                details={"submission_id": submission_id}
            )

    def adjust_quantity(self, key: str, delta: int) -> int:
        """Step a quantity by delta (clamped at 0). Returns the new quantity."""
        self._require(WizardState.SELECTING_ITEMS, action="adjust_quantity")
        self.ctx.selection = selection_service.adjust_quantity(self.ctx.selection, key, delta)
        return self.ctx.selection.quantity(key)

    def enter_quantity(self, key: str, text: Optional[str]) -> int:
        """Apply free-text entry. Returns the resulting quantity."""
        self._require(WizardState.SELECTING_ITEMS, action="enter_quantity")
        self.ctx.selection = selection_service.enter_quantity(self.ctx.selection, key, text)
        return self.ctx.selection.quantity(key)

    def capture_photo(self, photo: str, tags: Optional[list[str]] = None) -> None:
        """Completion photo plus selected tags."""
        self._require(WizardState.PHOTO_CAPTURE, action="capture_photo")
        self.ctx.photo = photo
        self.photo_tags = list(tags or [])

    def choose_visit(self, choice: VisitChoice) -> None:
        """Answer the recency prompt."""
        self.ctx.visit_choice = VisitChoice(choice)

    # ===================
    # DERIVED STATE
    # ===================

    @property
    def totals(self):
        return selection_service.compute_totals(self.ctx.selection)

    @property
    def visit_prompt_required(self) -> bool:
        """The market was visited recently and the GL must choose how to count."""
        return self.ctx.visit_is_recent

    @property
    def should_record_visit(self) -> bool:
        if not self.ctx.visit_is_recent:
            return True
        return self.ctx.visit_choice == VisitChoice.NEW_VISIT

    @property
    def error(self) -> Optional[str]:
        return self.ctx.error

    def can_continue(self) -> bool:
        return can_advance(self.state, self.ctx)

    # ===================
    # NAVIGATION
    # ===================

    def _apply(self, action: WizardAction) -> WizardState:
        try:
            target, reason = next_state(self.state, action, self.ctx)
        except KeyError:
            raise InvalidTransitionError(self.state.value, action.value)
        if target is None:
            raise WizardGuardError(self.state.value, reason)

        logger.debug(
            "wizard_transition",
            from_state=self.state.value,
            action=action.value,
            to_state=target.value
        )
        self.state = target
        return target

    def continue_(self) -> WizardState:
        """
        Advance one step.

        Leaving market selection loads the market's pending delivery
        photos. Reaching SUBMITTING saves the batch.

        Raises:
            WizardGuardError: If the current step's input is incomplete
            InvalidTransitionError: If the step cannot be continued
            SubmissionInProgressError: If a save is already running
        """
        if self.submitting:
            raise SubmissionInProgressError()

        if self.state == WizardState.SELECTING_MARKET and self.ctx.market is not None:
            self.ctx.pending_photos = self.wave_service.get_pending_delivery_photos(
                self.ctx.market.id
            )
            self.ctx.pending_resolutions = {}

        target = self._apply(WizardAction.CONTINUE)
        if target == WizardState.SUBMITTING:
            self._submit()
        return self.state

    def submit(self) -> WizardState:
        """Save from items or photo step; same as continuing into SUBMITTING."""
        if self.submitting:
            raise SubmissionInProgressError()
        self._require(
            WizardState.SELECTING_ITEMS,
            WizardState.PHOTO_CAPTURE,
            action="submit"
        )
        return self.continue_()

    def back(self) -> WizardState:
        """Return to the previous screen."""
        if self.submitting:
            raise SubmissionInProgressError()
        return self._apply(WizardAction.BACK)

    def close(self) -> WizardState:
        """Abandon the session and reset all local state."""
        self._apply(WizardAction.CLOSE)
        self._reset()
        return self.state

    # ===================
    # SUBMIT
    # ===================

    def _submit(self) -> None:
        """Save batch, then photo, then visit. Only the batch can fail the submit."""
        self.submitting = True
        self.ctx.error = None
        wave = self.ctx.wave
        market = self.ctx.market

        try:
            batch = SubmissionBatch(
                gebietsleiter_id=self.gebietsleiter_id,
                market_id=market.id,
                items=selection_service.collect_line_items(self.ctx.selection),
            )

            logger.info(
                "wizard_submitting",
                wave_id=wave.id,
                market_id=market.id,
                lines=len(batch.items)
            )

            try:
                result = self.wave_service.submit_batch(wave.id, batch)
            except AppError as e:
                logger.error(
                    "wizard_batch_failed",
                    wave_id=wave.id,
                    market_id=market.id,
                    error=e.message
                )
                self.ctx.error = SubmissionFailedError.USER_MESSAGE
                self._apply(WizardAction.FAIL)
                return

            if self.ctx.photo:
                try:
                    self.wave_service.upload_submission_photo(
                        wave.id,
                        self.gebietsleiter_id,
                        market.id,
                        self.ctx.photo,
                        submission_ids=result.submission_ids,
                        tags=self.photo_tags
                    )
                except AppError as e:
                    # Saved pre-orders stay valid without the photo
                    logger.error("wizard_photo_upload_failed", wave_id=wave.id, error=e.message)

            if self.should_record_visit:
                try:
                    visit = self.market_service.record_visit(
                        market.id,
                        gebietsleiter_id=self.gebietsleiter_id,
                        today=self.today
                    )
                    self.visit_recorded = visit.incremented
                except AppError as e:
                    logger.error("wizard_visit_record_failed", market_id=market.id, error=e.message)

            self.result = result
            self._apply(WizardAction.SUCCEED)
            logger.info(
                "wizard_submitted",
                wave_id=wave.id,
                market_id=market.id,
                submissions=len(result.submission_ids),
                visit_recorded=self.visit_recorded
            )

        finally:
            self.submitting = False
