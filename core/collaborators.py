"""Profile service client - HTTP implementation of the collaborator interfaces."""

import logging
from typing import Optional, List, Dict, Any

import requests
from tenacity import (
    retry,
    stop_after_attempt,
    wait_fixed,
    retry_if_exception,
    before_sleep_log
)

from core.errors import TransientStoreError
from core.interfaces import (
    Application,
    ApplicationStore,
    CandidatePool,
    ConversationStore,
    PushEndpoint,
    PushSubscriptionRegistry,
)

logger = logging.getLogger(__name__)


def _is_retryable_error(exc: Exception) -> bool:
    """
    Determine if an exception is retryable.

    Retries timeouts, connection errors and 5xx responses. Never 4xx.
    """
    if isinstance(exc, requests.Timeout):
        return True

    if isinstance(exc, requests.RequestException):
        response = getattr(exc, 'response', None)
        if response is not None:
            return response.status_code >= 500
        return True

    return False


class ProfileServiceClient(CandidatePool, ApplicationStore, ConversationStore, PushSubscriptionRegistry):
    """
    Client for the profile service, which owns profiles, job posts,
    applications, conversations and push subscriptions.

    A 404 means "absent"; any other failure surfaces as TransientStoreError.
    """

    def __init__(self, base_url: str = "http://profile-service:8000", timeout_seconds: float = 10.0):
        self.base_url = base_url.rstrip('/')
        self.timeout_seconds = timeout_seconds
        self.session = requests.Session()
        logger.info(f"ProfileServiceClient initialized: base_url={self.base_url}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_fixed(1),
        retry=retry_if_exception(_is_retryable_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )
    def _request(self, method: str, path: str, **kwargs) -> Optional[Dict[str, Any]]:
        """Perform a request. Returns None on 404, the decoded JSON body otherwise."""
        response = self.session.request(
            method,
            f"{self.base_url}{path}",
            timeout=self.timeout_seconds,
            **kwargs
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    def _call(self, operation: str, method: str, path: str, **kwargs) -> Optional[Dict[str, Any]]:
        try:
            return self._request(method, path, **kwargs)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Profile service {operation} failed: {e}")
            raise TransientStoreError(f"Profile service unavailable during {operation}") from e

    # --- CandidatePool ---

    def fetch_candidate_pool(self, user_id: str) -> List[str]:
        data = self._call("candidate pool fetch", "GET", f"/users/{user_id}/candidate-pool")
        if data is None:
            return []
        return [str(c) for c in data.get("candidates", [])]

    def entity_exists(self, entity_id: str) -> bool:
        return self._call("entity lookup", "GET", f"/entities/{entity_id}") is not None

    def audience_for(self, entity_id: str) -> List[str]:
        data = self._call("audience lookup", "GET", f"/entities/{entity_id}/audience")
        if data is None:
            return []
        return [str(u) for u in data.get("user_ids", [])]

    # --- ApplicationStore ---

    def get_application(self, application_id: str) -> Optional[Application]:
        data = self._call("application lookup", "GET", f"/applications/{application_id}")
        if data is None:
            return None
        try:
            return Application(
                id=str(data.get("id", application_id)),
                owner_id=str(data["owner_id"]),
                applicant_id=str(data["applicant_id"]),
            )
        except KeyError as e:
            logger.error(f"Profile service returned application {application_id} without {e}")
            raise TransientStoreError(f"Malformed application record {application_id}") from e

    # --- ConversationStore ---

    def create_conversation(self, user_a: str, user_b: str) -> str:
        data = self._call("conversation create", "POST", "/conversations", json={"user_ids": [user_a, user_b]})
        if not data or "conversation_id" not in data:
            raise TransientStoreError("Profile service returned no conversation id")
        return str(data["conversation_id"])

    # --- PushSubscriptionRegistry ---

    def get_endpoints(self, user_id: str) -> List[PushEndpoint]:
        data = self._call("push endpoint lookup", "GET", f"/users/{user_id}/push-subscriptions")
        if data is None:
            return []
        return [
            PushEndpoint(channel_type=e.get("channel_type", "push"), address=e["address"])
            for e in data.get("endpoints", [])
            if e.get("address")
        ]
