import yaml
import os
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class DatabaseConfig(BaseModel):
    url: str


class CreditsConfig(BaseModel):
    """
    Credit allotments.

    daily_free_swipes has no default: it is a product decision that must be
    supplied in config.yaml.
    """
    daily_free_swipes: int = Field(ge=0)
    monthly_boost_grant: int = Field(default=1, ge=1)


class CacheConfig(BaseModel):
    """Configuration for the per-user matched-candidate cache."""
    ttl_seconds: int = Field(gt=0)
    redis_url: Optional[str] = None  # Falls back to REDIS_URL / localhost
    redis_password: Optional[str] = None
    key_prefix: str = "match_cache"


def _validate_hhmm(value: str) -> str:
    hours, _, minutes = value.partition(':')
    if not (hours.isdigit() and minutes.isdigit()) or not (0 <= int(hours) < 24 and 0 <= int(minutes) < 60):
        raise ValueError(f"Expected HH:MM (UTC), got {value!r}")
    return value


class ScheduleConfig(BaseModel):
    """Fire times for the credit jobs, all in UTC."""
    daily_reset_time: str = "00:05"
    monthly_grant_time: str = "00:10"
    poll_interval_seconds: int = 30  # Upper bound on a single sleep

    @field_validator('daily_reset_time', 'monthly_grant_time')
    @classmethod
    def _check_time(cls, value: str) -> str:
        return _validate_hhmm(value)


class NotificationConfig(BaseModel):
    """
    Configuration for match and message notifications.

    Delivery is best-effort; disabling it never affects swipes or matches.
    """
    enabled: bool = True
    use_async_queue: bool = True  # Use Redis queue (RQ) for async processing
    redis_url: Optional[str] = None  # Override default Redis URL
    queue_name: str = "notifications"
    base_url: str = "http://localhost:3000"  # Base URL for links in notifications


class CollaboratorsConfig(BaseModel):
    """Where the profile service (candidates, applications, chat, push) lives."""
    base_url: str = "http://profile-service:8000"
    timeout_seconds: float = 10.0


class WebConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080


class AppConfig(BaseModel):
    database: DatabaseConfig
    credits: CreditsConfig
    cache: CacheConfig
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    collaborators: CollaboratorsConfig = Field(default_factory=CollaboratorsConfig)
    web: WebConfig = Field(default_factory=WebConfig)


def load_config(config_path: str = "config.yaml") -> AppConfig:
    # If not found at relative path (e.g. running from root), try absolute or adjusted path
    if not os.path.exists(config_path):
        # Specific fallback for Docker where WORKDIR is /app and config is in /app/config.yaml
        base_dir = os.path.dirname(os.path.abspath(__file__))
        config_path = os.path.join(base_dir, "..", "config.yaml")

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    # Allow env var override for DB URL
    env_db_url = os.environ.get("DATABASE_URL")
    if env_db_url:
        if 'database' not in data or data['database'] is None:
            data['database'] = {}
        data['database']['url'] = env_db_url

    # Allow env var override for Redis URL (cache and notification queue)
    env_redis_url = os.environ.get("REDIS_URL")
    if env_redis_url:
        for section in ('cache', 'notifications'):
            if section not in data or data[section] is None:
                data[section] = {}
            data[section]['redis_url'] = env_redis_url

    # Allow env var override for the profile service URL
    env_profile_url = os.environ.get("PROFILE_SERVICE_URL")
    if env_profile_url:
        if 'collaborators' not in data or data['collaborators'] is None:
            data['collaborators'] = {}
        data['collaborators']['base_url'] = env_profile_url

    return AppConfig(**data)
