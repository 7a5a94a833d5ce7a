"""
Collaborator Interfaces - contracts the swipe-matching core relies on.

Profiles, applications, conversations and push subscriptions live in other
services. The core only sees these narrow abstractions.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Application:
    """A worker's application to an employer's job post."""
    id: str
    owner_id: str  # employer who owns the job post
    applicant_id: str


@dataclass(frozen=True)
class PushEndpoint:
    """One delivery address registered by a user."""
    channel_type: str  # e.g. "push", "in_app"
    address: str


class CandidatePool(ABC):
    """Authoritative source of entities a user may swipe on."""

    @abstractmethod
    def fetch_candidate_pool(self, user_id: str) -> List[str]:
        """Return eligible entity ids, most-recently-eligible first."""
        pass

    @abstractmethod
    def entity_exists(self, entity_id: str) -> bool:
        pass

    def audience_for(self, entity_id: str) -> List[str]:
        """
        Users whose candidate list may contain `entity_id`.

        Used to invalidate caches when the entity's eligibility changes.
        """
        return []


class ApplicationStore(ABC):
    @abstractmethod
    def get_application(self, application_id: str) -> Optional[Application]:
        """Return the application, or None if the id is unknown."""
        pass


class ConversationStore(ABC):
    @abstractmethod
    def create_conversation(self, user_a: str, user_b: str) -> str:
        """Open a chat channel between two matched users. Returns its id."""
        pass


class PushSubscriptionRegistry(ABC):
    @abstractmethod
    def get_endpoints(self, user_id: str) -> List[PushEndpoint]:
        """Zero or more delivery endpoints. An empty list is not an error."""
        pass
