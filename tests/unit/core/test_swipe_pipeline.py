"""
Tests for SwipeService.

Runs the full pipeline against SQLite with in-memory collaborators:
credit consumption, duplicate protection, match creation (including
concurrent mutual likes), cache invalidation and notification hand-off.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from unittest.mock import Mock, patch

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError

from core.cache.match_cache import MatchCacheService
from core.credits import CreditLedger
from core.errors import (
    DuplicateSwipe,
    InsufficientCredit,
    InvalidTarget,
    NotFound,
    TransientStoreError,
    Unauthorized,
)
from core.interfaces import Application, PushEndpoint
from core.swipe import SwipeService, SwipeStatus, CreditType, SwipeDirection
from database.models import MatchRecord, SwipeRecord
from notification.service import NotificationDispatcher
from tests.conftest import (
    FakeRedis,
    InMemoryApplicationStore,
    InMemoryCandidatePool,
    InMemoryConversationStore,
    InMemoryPushRegistry,
)


class RecordingDispatcher:
    def __init__(self):
        self.matches = []
        self._lock = threading.Lock()

    def notify_match(self, match):
        with self._lock:
            self.matches.append(match)
        return 2


@pytest.fixture
def pool():
    return InMemoryCandidatePool(
        pools={
            "alice": ["bob", "t1", "t2", "t3"],
            "bob": ["alice", "t1"],
        },
        entities=["alice", "bob", "carol", "t1", "t2", "t3"],
    )


@pytest.fixture
def ledger(session_factory):
    return CreditLedger(daily_free_swipes=1, session_factory=session_factory)


@pytest.fixture
def cache():
    return MatchCacheService(ttl_seconds=180, redis_client=FakeRedis())


@pytest.fixture
def conversations():
    return InMemoryConversationStore()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def applications():
    return InMemoryApplicationStore([
        Application(id="app-1", owner_id="employer", applicant_id="worker"),
    ])


@pytest.fixture
def service(ledger, pool, cache, conversations, dispatcher, applications, session_factory):
    return SwipeService(
        ledger=ledger,
        candidate_pool=pool,
        application_store=applications,
        conversation_store=conversations,
        cache=cache,
        dispatcher=dispatcher,
        session_factory=session_factory,
    )


def _count(session_factory, model):
    with session_factory() as session:
        return session.execute(select(func.count()).select_from(model)).scalar_one()


class TestSwipeValidation:

    def test_empty_target(self, service):
        with pytest.raises(InvalidTarget):
            service.swipe("alice", "", "like")

    def test_self_swipe(self, service):
        with pytest.raises(InvalidTarget):
            service.swipe("alice", "alice", "like")

    def test_unknown_target(self, service, session_factory):
        with pytest.raises(InvalidTarget):
            service.swipe("alice", "nobody", "like")
        assert _count(session_factory, SwipeRecord) == 0

    def test_unknown_direction(self, service):
        with pytest.raises(ValueError):
            service.swipe("alice", "bob", "superlike")


class TestSwipeCredits:

    def test_like_consumes_free_swipe(self, service):
        result = service.swipe("alice", "t1", "like")

        assert result.status is SwipeStatus.RECORDED
        assert result.direction is SwipeDirection.LIKE
        assert result.credit_type is CreditType.FREE
        assert result.remaining_balance == 0
        assert result.match_id is None
        assert service.get_credit_balance("alice") == {"free": 0, "boost": 0, "unlimited": False}

    def test_boost_after_free(self, service, ledger):
        service.get_credit_balance("alice")
        ledger.grant_monthly_boost_credit("2026-03")

        assert service.swipe("alice", "t1", "like").credit_type is CreditType.FREE
        assert service.swipe("alice", "t2", "like").credit_type is CreditType.BOOST
        with pytest.raises(InsufficientCredit):
            service.swipe("alice", "t3", "like")

    def test_insufficient_credit_writes_nothing(self, service, session_factory):
        service.swipe("alice", "t1", "like")
        with pytest.raises(InsufficientCredit):
            service.swipe("alice", "t2", "like")

        assert _count(session_factory, SwipeRecord) == 1
        assert "t2" in service.get_matched_candidates("alice")

    def test_skip_never_charges(self, service):
        result = service.swipe("alice", "t1", "skip")

        assert result.credit_type is CreditType.NONE
        assert result.remaining_balance is None
        assert service.get_credit_balance("alice")["free"] == 1

    def test_skip_allowed_with_zero_balance(self, service):
        service.swipe("alice", "t1", "like")
        assert service.swipe("alice", "t2", "skip").status is SwipeStatus.RECORDED


class TestDuplicateSwipes:

    def test_duplicate_rejected_without_charge(self, service, ledger):
        service.get_credit_balance("alice")
        ledger.grant_monthly_boost_credit("2026-03")

        service.swipe("alice", "t1", "like")
        with pytest.raises(DuplicateSwipe):
            service.swipe("alice", "t1", "like")

        assert service.get_credit_balance("alice") == {"free": 0, "boost": 1, "unlimited": False}

    def test_skip_then_like_is_duplicate(self, service):
        service.swipe("alice", "t1", "skip")
        with pytest.raises(DuplicateSwipe):
            service.swipe("alice", "t1", "like")
        assert service.get_credit_balance("alice")["free"] == 1

    @pytest.mark.concurrency
    def test_concurrent_duplicates_charge_once(self, session_factory, pool, cache):
        ledger = CreditLedger(daily_free_swipes=5, session_factory=session_factory)
        service = SwipeService(ledger=ledger, candidate_pool=pool, cache=cache, session_factory=session_factory)

        def attempt(_):
            try:
                service.swipe("alice", "t1", "like")
                return "ok"
            except DuplicateSwipe:
                return "dup"

        with ThreadPoolExecutor(max_workers=6) as executor:
            outcomes = list(executor.map(attempt, range(6)))

        assert outcomes.count("ok") == 1
        assert outcomes.count("dup") == 5
        assert ledger.get_balance("alice").free == 4
        assert _count(session_factory, SwipeRecord) == 1


class TestMatching:

    def test_mutual_like_creates_match(self, service, conversations, dispatcher, session_factory):
        first = service.swipe("alice", "bob", "like")
        assert first.status is SwipeStatus.RECORDED

        second = service.swipe("bob", "alice", "like")
        assert second.status is SwipeStatus.MATCHED
        assert second.match_id is not None

        assert conversations.created == [("alice", "bob")]
        assert len(dispatcher.matches) == 1
        notified = dispatcher.matches[0]
        assert notified.id == second.match_id
        assert notified.participants() == ("alice", "bob")
        assert notified.conversation_id == "conv-1"

        with session_factory() as session:
            record = session.get(MatchRecord, second.match_id)
            assert record.conversation_id == "conv-1"
            assert record.status == "active"

    def test_like_then_skip_no_match(self, service, dispatcher, session_factory):
        service.swipe("alice", "bob", "like")
        result = service.swipe("bob", "alice", "skip")

        assert result.status is SwipeStatus.RECORDED
        assert _count(session_factory, MatchRecord) == 0
        assert dispatcher.matches == []

    def test_conversation_failure_keeps_match(self, service, conversations, dispatcher, session_factory):
        conversations.create_conversation = Mock(side_effect=RuntimeError("chat down"))

        service.swipe("alice", "bob", "like")
        result = service.swipe("bob", "alice", "like")

        assert result.status is SwipeStatus.MATCHED
        assert _count(session_factory, MatchRecord) == 1
        assert len(dispatcher.matches) == 1
        assert dispatcher.matches[0].conversation_id is None

    def test_retried_like_recovers_missing_match(self, service, conversations, dispatcher, session_factory):
        service.swipe("bob", "alice", "like")

        with patch.object(SwipeService, "_create_match_if_mutual", side_effect=OperationalError("stmt", {}, Exception("locked"))):
            with pytest.raises(TransientStoreError):
                service.swipe("alice", "bob", "like")
        assert _count(session_factory, MatchRecord) == 0

        with pytest.raises(DuplicateSwipe):
            service.swipe("alice", "bob", "like")

        assert _count(session_factory, MatchRecord) == 1
        assert len(dispatcher.matches) == 1
        assert conversations.created == [("alice", "bob")]

    def test_repeated_like_without_mutual_interest(self, service, dispatcher, session_factory):
        service.swipe("alice", "bob", "skip")
        service.swipe("bob", "alice", "like")

        with pytest.raises(DuplicateSwipe):
            service.swipe("alice", "bob", "like")

        assert _count(session_factory, MatchRecord) == 0
        assert dispatcher.matches == []

    def test_notifies_each_side_once(self, ledger, pool, cache, conversations, session_factory):
        registry = InMemoryPushRegistry({
            "alice": [PushEndpoint("in_app", "alice")],
            "bob": [PushEndpoint("in_app", "bob")],
        })
        dispatcher = NotificationDispatcher(registry=registry, use_async_queue=False)
        send_spy = Mock(wraps=dispatcher._dispatch)
        dispatcher._dispatch = send_spy

        service = SwipeService(
            ledger=ledger,
            candidate_pool=pool,
            conversation_store=conversations,
            cache=cache,
            dispatcher=dispatcher,
            session_factory=session_factory,
        )
        service.swipe("alice", "bob", "like")
        service.swipe("bob", "alice", "like")

        recipients = sorted(call.args[0]['user_id'] for call in send_spy.call_args_list)
        assert recipients == ["alice", "bob"]

    @pytest.mark.concurrency
    def test_concurrent_mutual_likes_create_one_match(self, session_factory, pool, cache):
        ledger = CreditLedger(daily_free_swipes=1, session_factory=session_factory)
        ledger.set_unlimited("alice", True)
        ledger.set_unlimited("bob", True)

        for _ in range(5):
            dispatcher = RecordingDispatcher()
            conversations = InMemoryConversationStore()
            service = SwipeService(
                ledger=ledger,
                candidate_pool=pool,
                conversation_store=conversations,
                cache=cache,
                dispatcher=dispatcher,
                session_factory=session_factory,
            )
            barrier = threading.Barrier(2)

            def like(actor, target):
                barrier.wait()
                return service.swipe(actor, target, "like")

            with ThreadPoolExecutor(max_workers=2) as executor:
                futures = [executor.submit(like, "alice", "bob"), executor.submit(like, "bob", "alice")]
                results = [f.result() for f in futures]

            assert SwipeStatus.MATCHED in {r.status for r in results}
            match_ids = {r.match_id for r in results if r.match_id}
            assert len(match_ids) == 1
            assert _count(session_factory, MatchRecord) == 1
            assert len(dispatcher.matches) == 1
            assert len(conversations.created) == 1

            # Reset for the next round
            with session_factory() as session:
                session.query(MatchRecord).delete()
                session.query(SwipeRecord).delete()
                session.commit()


class TestCandidates:

    def test_candidates_exclude_swiped_targets(self, service):
        assert service.get_matched_candidates("alice") == ["bob", "t1", "t2", "t3"]

        service.swipe("alice", "t2", "skip")

        assert service.get_matched_candidates("alice") == ["bob", "t1", "t3"]

    def test_cache_is_used_between_swipes(self, service, pool):
        service.get_matched_candidates("alice")
        service.get_matched_candidates("alice")
        assert pool.fetch_count == 1

    def test_swiped_target_hidden_when_invalidation_fails(self, ledger, pool, session_factory):
        redis = FakeRedis()
        redis.incr = Mock(side_effect=Exception("READONLY"))
        redis.delete = Mock(side_effect=Exception("READONLY"))
        service = SwipeService(
            ledger=ledger,
            candidate_pool=pool,
            cache=MatchCacheService(ttl_seconds=180, redis_client=redis),
            session_factory=session_factory,
        )
        assert service.get_matched_candidates("alice") == ["bob", "t1", "t2", "t3"]

        service.swipe("alice", "t2", "skip")

        assert service.get_matched_candidates("alice") == ["bob", "t1", "t3"]
        assert pool.fetch_count == 1

    def test_cache_without_redis(self, ledger, pool, session_factory):
        service = SwipeService(ledger=ledger, candidate_pool=pool, session_factory=session_factory)
        service.swipe("alice", "t1", "like")
        assert service.get_matched_candidates("alice") == ["bob", "t2", "t3"]

    def test_paging(self, service):
        assert service.get_matched_candidates("alice", limit=2) == ["bob", "t1"]
        assert service.get_matched_candidates("alice", limit=2, offset=2) == ["t2", "t3"]
        assert service.get_matched_candidates("alice", offset=3) == ["t3"]
        with pytest.raises(ValueError):
            service.get_matched_candidates("alice", offset=-1)

    def test_self_and_duplicates_removed(self, ledger, session_factory):
        pool = InMemoryCandidatePool(pools={"alice": ["t1", "alice", "t1", "t2"]})
        service = SwipeService(ledger=ledger, candidate_pool=pool, session_factory=session_factory)
        assert service.get_matched_candidates("alice") == ["t1", "t2"]

    def test_eligibility_change_invalidates_audience(self, service, pool):
        pool.audience = {"t1": ["alice", "bob"]}
        service.get_matched_candidates("alice")

        assert service.handle_eligibility_change("t1") == 2

        pool.pools["alice"] = ["bob", "t2", "t3"]
        assert service.get_matched_candidates("alice") == ["bob", "t2", "t3"]

    def test_eligibility_change_explicit_users(self, service):
        assert service.handle_eligibility_change("t1", user_ids=["carol"]) == 1


class TestSkipApplication:

    def test_owner_can_skip(self, service):
        result = service.skip_application("employer", "app-1")
        assert result.status is SwipeStatus.RECORDED
        assert result.credit_type is CreditType.NONE
        assert service.get_credit_balance("employer")["free"] == 1

    def test_unknown_application(self, service):
        with pytest.raises(NotFound):
            service.skip_application("employer", "app-404")

    def test_other_users_application(self, service):
        with pytest.raises(Unauthorized):
            service.skip_application("someone-else", "app-1")

    def test_skip_twice(self, service):
        service.skip_application("employer", "app-1")
        with pytest.raises(DuplicateSwipe):
            service.skip_application("employer", "app-1")


class TestEndMatch:

    def test_participant_can_end(self, service):
        service.swipe("alice", "bob", "like")
        match_id = service.swipe("bob", "alice", "like").match_id

        ended = service.end_match(match_id, "alice")
        assert ended.status == "ended"
        assert service.end_match(match_id, "bob").status == "ended"

    def test_outsider_cannot_end(self, service):
        service.swipe("alice", "bob", "like")
        match_id = service.swipe("bob", "alice", "like").match_id
        with pytest.raises(Unauthorized):
            service.end_match(match_id, "carol")

    def test_unknown_match(self, service):
        with pytest.raises(NotFound):
            service.end_match("missing", "alice")


class TestMatchListing:

    def test_lists_active_matches_for_both_sides(self, service):
        service.swipe("alice", "bob", "like")
        match_id = service.swipe("bob", "alice", "like").match_id

        for user_id in ("alice", "bob"):
            matches = service.get_matches(user_id)
            assert [m.id for m in matches] == [match_id]
            assert matches[0].conversation_id == "conv-1"

        assert service.get_matches("carol") == []

    def test_ended_matches_listed_separately(self, service):
        service.swipe("alice", "bob", "like")
        match_id = service.swipe("bob", "alice", "like").match_id
        service.end_match(match_id, "bob")

        assert service.get_matches("alice") == []
        assert [m.id for m in service.get_matches("alice", status="ended")] == [match_id]

    def test_unknown_status(self, service):
        with pytest.raises(ValueError):
            service.get_matches("alice", status="pending")
