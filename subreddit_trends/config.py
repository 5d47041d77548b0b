"""Configuration handling for the subreddit trends service."""

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/118.0.0.0 Safari/537.36 RedditTrends/1.0"
)


@dataclass
class RateLimitConfig:
    """Request gate configuration."""

    min_interval_sec: float = 1.2


@dataclass
class FetchConfig:
    """Fallback chain configuration."""

    timeout_sec: float = 10.0
    top_n: int = 5
    listing_limit: int = 25
    default_timeframe: str = "week"
    default_retry_after_sec: int = 30


@dataclass
class CacheConfig:
    """Result cache TTLs."""

    day_ttl_sec: int = 300  # 5 minutes
    default_ttl_sec: int = 3600  # 60 minutes


@dataclass
class OAuthConfig:
    """Token lifetime handling for the client-credentials grant."""

    token_safety_margin_sec: int = 60
    min_token_lifetime_sec: int = 60


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""

    enable_prometheus: bool = False
    prometheus_port: int = 8000


@dataclass
class ApiConfig:
    """HTTP surface configuration."""

    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


def _merge_section(section: Any, values: Dict[str, Any]) -> Any:
    """Return a copy of a dataclass section with known keys overridden."""
    known = {f.name for f in fields(section)}
    current = {name: getattr(section, name) for name in known}
    for key, value in values.items():
        if key in known:
            current[key] = value
    return type(section)(**current)


@dataclass
class Config:
    """Application configuration combining environment variables and YAML config."""

    # Reddit OAuth credentials from environment (optional)
    client_id: str = ""
    client_secret: str = ""
    user_agent: str = DEFAULT_USER_AGENT

    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    oauth: OAuthConfig = field(default_factory=OAuthConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    api: ApiConfig = field(default_factory=ApiConfig)

    @property
    def oauth_enabled(self) -> bool:
        """OAuth stage runs only when both id and secret are configured."""
        return bool(self.client_id and self.client_secret)

    @classmethod
    def from_files(cls, config_path: Optional[str] = None, env_path: Optional[str] = None) -> "Config":
        """
        Load configuration from a YAML file and environment variables.

        Args:
            config_path: Optional path to a YAML configuration file
            env_path: Optional path to .env file (defaults to .env in current directory)

        Returns:
            Config instance with merged configuration
        """
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        config = cls()
        config.client_id = os.getenv("REDDIT_CLIENT_ID", "")
        config.client_secret = os.getenv("REDDIT_CLIENT_SECRET", "")
        config.user_agent = os.getenv("REDDIT_USER_AGENT", DEFAULT_USER_AGENT)

        if config_path and os.path.exists(config_path):
            with open(config_path, "r", encoding="utf-8") as file:
                yaml_config = yaml.safe_load(file) or {}

            for key, value in yaml_config.items():
                if not hasattr(config, key):
                    continue
                current = getattr(config, key)
                if isinstance(value, dict) and hasattr(current, "__dataclass_fields__"):
                    setattr(config, key, _merge_section(current, value))
                elif key not in ("client_id", "client_secret"):
                    # Secrets only come from the environment
                    setattr(config, key, value)

        return config

    def validate(self) -> List[str]:
        """
        Validate configuration and return a list of validation errors.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if bool(self.client_id) != bool(self.client_secret):
            errors.append("REDDIT_CLIENT_ID and REDDIT_CLIENT_SECRET must be set together")
        if not self.user_agent:
            errors.append("user_agent must not be empty")
        if self.rate_limit.min_interval_sec < 0:
            errors.append("rate_limit.min_interval_sec must not be negative")
        if self.fetch.timeout_sec <= 0:
            errors.append("fetch.timeout_sec must be greater than 0")
        if self.fetch.top_n <= 0:
            errors.append("fetch.top_n must be greater than 0")
        if self.fetch.listing_limit < self.fetch.top_n:
            errors.append("fetch.listing_limit must be at least fetch.top_n")
        if self.cache.day_ttl_sec <= 0 or self.cache.default_ttl_sec <= 0:
            errors.append("cache TTLs must be greater than 0")
        if self.oauth.min_token_lifetime_sec <= 0:
            errors.append("oauth.min_token_lifetime_sec must be greater than 0")

        return errors
