"""
Swipe Pipeline - turns a swipe into credit consumption, a swipe record and,
on mutual interest, a match.

Flow for swipe():
    1. Validate the target
    2. One transaction: duplicate guard, debit (likes only), record insert
    3. Second short transaction: mutual-like check and match upsert
    4. Invalidate the actor's candidate cache
    5. New match only: open a conversation and notify both users

Step 2 is all-or-nothing, so a failed record write never costs a credit.
Step 3 reads committed data, so two users liking each other at the same time
always end up matched exactly once.
"""

import dataclasses
import logging
from typing import List, Optional, Set, Tuple, Iterable

from sqlalchemy.exc import OperationalError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_fixed,
    retry_if_exception_type,
    before_sleep_log
)

from core.cache.match_cache import MatchCacheService
from core.credits.ledger import CreditLedger
from core.errors import (
    DuplicateSwipe,
    InvalidTarget,
    NotFound,
    Unauthorized,
    TransientStoreError,
    translate_store_errors,
)
from core.interfaces import CandidatePool, ApplicationStore, ConversationStore
from core.swipe.dto import (
    SwipeDirection,
    CreditType,
    SwipeStatus,
    SwipeResult,
    MatchInfo,
    MATCH_STATUSES,
)
from database.uow import swipe_uow
from notification.service import NotificationDispatcher

logger = logging.getLogger(__name__)


class SwipeService:
    """Entry point for swipes, candidate listing and match lifecycle."""

    def __init__(
        self,
        ledger: CreditLedger,
        candidate_pool: CandidatePool,
        application_store: Optional[ApplicationStore] = None,
        conversation_store: Optional[ConversationStore] = None,
        cache: Optional[MatchCacheService] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        session_factory=None
    ):
        self.ledger = ledger
        self.candidate_pool = candidate_pool
        self.application_store = application_store
        self.conversation_store = conversation_store
        self.cache = cache
        self.dispatcher = dispatcher
        self.session_factory = session_factory

    # --- Swipes ---

    def swipe(self, actor_id: str, target_id: str, direction) -> SwipeResult:
        """
        Record a like or skip from actor_id on target_id.

        Raises:
            InvalidTarget: empty id, self-swipe or unknown entity
            DuplicateSwipe: the actor already swiped this target. A repeated like
                still creates a match that an earlier failed attempt left out
            InsufficientCredit: a like with no free or boost credit left
            TransientStoreError: the store failed; nothing was committed
        """
        direction = SwipeDirection(direction)
        self._validate_target(actor_id, target_id)
        if not self.candidate_pool.entity_exists(target_id):
            logger.info(f"Rejected swipe by {actor_id}: unknown target {target_id}")
            raise InvalidTarget(target_id, "target does not exist")
        return self._consume(actor_id, target_id, direction)

    def skip_application(self, actor_id: str, application_id: str) -> SwipeResult:
        """
        Skip an application made to one of the actor's job posts.

        Raises:
            NotFound: the application does not exist
            Unauthorized: the application belongs to someone else
            DuplicateSwipe: the application was already skipped
        """
        if not application_id:
            raise InvalidTarget(application_id, "empty application id")
        if self.application_store is None:
            raise NotFound("application", application_id)

        application = self.application_store.get_application(application_id)
        if application is None:
            logger.info(f"Skip by {actor_id} rejected: application {application_id} not found")
            raise NotFound("application", application_id)
        if application.owner_id != actor_id:
            logger.warning(f"User {actor_id} tried to skip application {application_id} "
                           f"owned by {application.owner_id}")
            raise Unauthorized(actor_id, f"skip application {application_id}")

        return self._consume(actor_id, application_id, SwipeDirection.SKIP)

    def _validate_target(self, actor_id: str, target_id: str) -> None:
        if not target_id:
            raise InvalidTarget(target_id, "empty target id")
        if target_id == actor_id:
            raise InvalidTarget(target_id, "cannot swipe on yourself")

    def _consume(self, actor_id: str, target_id: str, direction: SwipeDirection) -> SwipeResult:
        try:
            credit_type, remaining = self._record_swipe(actor_id, target_id, direction)
        except DuplicateSwipe:
            if direction is SwipeDirection.LIKE:
                self._recover_match(actor_id, target_id)
            raise

        match: Optional[MatchInfo] = None
        created = False
        try:
            if direction is SwipeDirection.LIKE:
                with translate_store_errors("match detection"):
                    match, created = self._create_match_if_mutual(actor_id, target_id)
        finally:
            # The record is committed either way; the cached list must not show the target again
            if self.cache is not None:
                self.cache.invalidate(actor_id)

        if created:
            match = self._open_conversation(match)
            if self.dispatcher is not None:
                self.dispatcher.notify_match(match)

        return SwipeResult(
            status=SwipeStatus.MATCHED if match is not None else SwipeStatus.RECORDED,
            direction=direction,
            credit_type=credit_type,
            match_id=match.id if match is not None else None,
            remaining_balance=remaining,
        )

    def _record_swipe(
        self,
        actor_id: str,
        target_id: str,
        direction: SwipeDirection
    ) -> Tuple[CreditType, Optional[int]]:
        credit_type = CreditType.NONE
        remaining = None

        with translate_store_errors("swipe record"):
            with swipe_uow(self.session_factory) as uow:
                if uow.swipes.get_swipe(actor_id, target_id) is not None:
                    logger.info(f"Duplicate swipe by {actor_id} on {target_id}")
                    raise DuplicateSwipe(actor_id, target_id)

                if direction is SwipeDirection.LIKE:
                    debit = self.ledger.debit_with(uow.credits, actor_id)
                    credit_type = CreditType(debit.credit_type)
                    remaining = debit.remaining_balance

                # Lost a race with a concurrent identical swipe; rollback returns the credit
                if not uow.swipes.insert_swipe(actor_id, target_id, direction.value, credit_type.value):
                    logger.info(f"Concurrent duplicate swipe by {actor_id} on {target_id}")
                    raise DuplicateSwipe(actor_id, target_id)

        logger.info(f"Recorded {direction.value} by {actor_id} on {target_id} (credit: {credit_type.value})")
        return credit_type, remaining

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_fixed(0.2),
        retry=retry_if_exception_type(OperationalError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )
    def _create_match_if_mutual(
        self,
        actor_id: str,
        target_id: str,
        require_own_like: bool = False
    ) -> Tuple[Optional[MatchInfo], bool]:
        with swipe_uow(self.session_factory) as uow:
            if require_own_like and not uow.swipes.has_like(actor_id, target_id):
                return None, False
            if not uow.swipes.has_like(target_id, actor_id):
                return None, False
            record, created = uow.matches.upsert_match(actor_id, target_id)
            return MatchInfo.from_record(record), created

    def _recover_match(self, actor_id: str, target_id: str) -> None:
        """
        Retried like whose earlier match step failed: create the missing match.

        Never raises; the caller re-raises DuplicateSwipe.
        """
        try:
            with translate_store_errors("match recovery"):
                match, created = self._create_match_if_mutual(actor_id, target_id, require_own_like=True)
        except TransientStoreError as e:
            logger.error(f"Match recovery for {actor_id} -> {target_id} failed: {e}")
            return

        if created:
            logger.warning(f"Recovered missing match {match.id} between {actor_id} and {target_id}")
            match = self._open_conversation(match)
            if self.dispatcher is not None:
                self.dispatcher.notify_match(match)

    def _open_conversation(self, match: MatchInfo) -> MatchInfo:
        if self.conversation_store is None:
            return match
        try:
            conversation_id = self.conversation_store.create_conversation(
                match.user_low_id, match.user_high_id
            )
            with swipe_uow(self.session_factory) as uow:
                uow.matches.set_conversation(match.id, conversation_id)
            logger.info(f"Opened conversation {conversation_id} for match {match.id}")
            return dataclasses.replace(match, conversation_id=conversation_id)
        except Exception as e:
            logger.error(f"Failed to open conversation for match {match.id}: {e}")
            return match

    # --- Reads ---

    def get_matched_candidates(self, user_id: str, limit: Optional[int] = None, offset: int = 0) -> List[str]:
        """Candidates the user has not swiped yet, in pool order."""
        if offset < 0 or (limit is not None and limit < 0):
            raise ValueError("limit and offset must be non-negative")

        def load() -> List[str]:
            pool = self.candidate_pool.fetch_candidate_pool(user_id)
            swiped = self._swiped_targets(user_id)
            return [c for c in dict.fromkeys(pool) if c not in swiped and c != user_id]

        if self.cache is not None:
            candidates = self.cache.get_candidates(user_id, load)
            # A cached list can predate a swipe whose invalidation did not reach Redis
            swiped = self._swiped_targets(user_id)
            candidates = [c for c in candidates if c not in swiped]
        else:
            candidates = load()

        end = offset + limit if limit is not None else None
        return candidates[offset:end]

    def _swiped_targets(self, user_id: str) -> Set[str]:
        with translate_store_errors("candidate load"):
            with swipe_uow(self.session_factory) as uow:
                return uow.swipes.get_swiped_target_ids(user_id)

    def get_credit_balance(self, user_id: str) -> dict:
        return self.ledger.get_balance(user_id).to_dict()

    # --- Lifecycle ---

    def handle_eligibility_change(self, entity_id: str, user_ids: Optional[Iterable[str]] = None) -> int:
        """Invalidate caches of users who may see entity_id. Returns how many were invalidated."""
        if self.cache is None:
            return 0
        if user_ids is None:
            user_ids = self.candidate_pool.audience_for(entity_id)
        count = self.cache.invalidate_many(user_ids)
        logger.info(f"Eligibility change for {entity_id} invalidated {count} candidate caches")
        return count

    def get_matches(self, user_id: str, status: str = 'active') -> List[MatchInfo]:
        """The user's matches with the given status, newest first."""
        if status not in MATCH_STATUSES:
            raise ValueError(f"Unknown match status: {status}")
        with translate_store_errors("match listing"):
            with swipe_uow(self.session_factory) as uow:
                records = uow.matches.get_matches_for_user(user_id, status=status)
                return [MatchInfo.from_record(record) for record in records]

    def end_match(self, match_id: str, user_id: str) -> MatchInfo:
        """End an active match. Ending an already ended match is a no-op."""
        with translate_store_errors("end match"):
            with swipe_uow(self.session_factory) as uow:
                record = uow.matches.get_by_id(match_id)
                if record is None:
                    raise NotFound("match", match_id)
                if user_id not in record.participants():
                    raise Unauthorized(user_id, f"end match {match_id}")
                uow.matches.end_match(record)
                return MatchInfo.from_record(record)
