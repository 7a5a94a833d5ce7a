from dataclasses import dataclass
from typing import Optional

from core.cache.match_cache import MatchCacheService
from core.collaborators import ProfileServiceClient
from core.config_loader import AppConfig
from core.credits.ledger import CreditLedger
from core.swipe.pipeline import SwipeService
from database.database import create_db_engine, create_session_factory
from notification.service import NotificationDispatcher


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    Single source of truth for service instantiation. DB access is obtained
    per operation via swipe_uow()/db_session_scope().
    """
    config: AppConfig
    ledger: CreditLedger
    profile_client: ProfileServiceClient
    swipe_service: SwipeService
    cache: Optional[MatchCacheService] = None
    dispatcher: Optional[NotificationDispatcher] = None

    @classmethod
    def build(cls, config: AppConfig, session_factory=None) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration
            session_factory: Session factory override (defaults to one bound to
                config.database.url)

        Returns:
            Fully wired AppContext instance
        """
        if session_factory is None:
            session_factory = create_session_factory(create_db_engine(config.database.url))

        ledger = CreditLedger(
            daily_free_swipes=config.credits.daily_free_swipes,
            monthly_boost_grant=config.credits.monthly_boost_grant,
            session_factory=session_factory,
        )

        profile_client = ProfileServiceClient(
            base_url=config.collaborators.base_url,
            timeout_seconds=config.collaborators.timeout_seconds,
        )

        cache = cls._build_cache(config)
        dispatcher = cls._build_dispatcher(config, profile_client)

        swipe_service = SwipeService(
            ledger=ledger,
            candidate_pool=profile_client,
            application_store=profile_client,
            conversation_store=profile_client,
            cache=cache,
            dispatcher=dispatcher,
            session_factory=session_factory,
        )

        return cls(
            config=config,
            ledger=ledger,
            profile_client=profile_client,
            swipe_service=swipe_service,
            cache=cache,
            dispatcher=dispatcher,
        )

    @staticmethod
    def _build_cache(config: AppConfig) -> MatchCacheService:
        """Build the candidate cache. An unreachable Redis yields a pass-through cache."""
        cache_config = config.cache
        return MatchCacheService(
            ttl_seconds=cache_config.ttl_seconds,
            redis_url=cache_config.redis_url or "redis://localhost:6379/0",
            password=cache_config.redis_password,
            key_prefix=cache_config.key_prefix,
        )

    @staticmethod
    def _build_dispatcher(
        config: AppConfig,
        registry: ProfileServiceClient
    ) -> Optional[NotificationDispatcher]:
        """Build notification dispatcher if enabled in config."""
        notification_config = config.notifications

        if not notification_config or not notification_config.enabled:
            return None

        return NotificationDispatcher(
            registry=registry,
            redis_url=notification_config.redis_url or "redis://localhost:6379/0",
            use_async_queue=notification_config.use_async_queue,
            queue_name=notification_config.queue_name,
            base_url=notification_config.base_url,
        )
