"""
Configuration management for the competition session engine.
"""
import os
from typing import Optional
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class GitHubConfig:
    """GitHub API configuration."""
    token: Optional[str]
    base_url: str = "https://api.github.com"
    timeout: int = 10
    max_retries: int = 2
    per_page: int = 20


@dataclass
class EngineConfig:
    """Competition rules and polling cadence."""
    lock_minutes: int = 10
    payment_required: bool = True
    min_sprint_hours: int = 1
    max_sprint_hours: int = 24
    default_sprint_hours: int = 10
    commit_poll_minutes: int = 5
    poll_timeout_seconds: float = 15.0
    state_file: Optional[str] = None

    @property
    def lock_window_ms(self) -> int:
        return self.lock_minutes * 60 * 1000


class ConfigManager:
    """Manages application configuration."""
    
    def __init__(self):
        self.github = self._load_github_config()
        self.engine = self._load_engine_config()
    
    def _load_github_config(self) -> GitHubConfig:
        """Load GitHub configuration from environment."""
        return GitHubConfig(
            token=os.getenv("GITHUB_TOKEN"),
            base_url=os.getenv("GITHUB_BASE_URL", "https://api.github.com"),
            timeout=int(os.getenv("GITHUB_TIMEOUT", "10")),
            max_retries=int(os.getenv("GITHUB_MAX_RETRIES", "2")),
            per_page=int(os.getenv("GITHUB_COMMITS_PER_PAGE", "20"))
        )
    
    def _load_engine_config(self) -> EngineConfig:
        """Load competition rules from environment."""
        return EngineConfig(
            lock_minutes=int(os.getenv("LOCK_MINUTES", "10")),
            payment_required=_env_bool("PAYMENT_REQUIRED", "true"),
            default_sprint_hours=int(os.getenv("SPRINT_HOURS", "10")),
            commit_poll_minutes=int(os.getenv("COMMIT_POLL_MINUTES", "5")),
            poll_timeout_seconds=float(os.getenv("POLL_TIMEOUT_SECONDS", "15")),
            state_file=os.getenv("STATE_FILE") or None
        )
    
    def validate(self) -> list:
        """Validate configuration and return any errors."""
        errors = []
        
        if self.engine.lock_minutes <= 0:
            errors.append("Lock window must be positive")
        
        if not (self.engine.min_sprint_hours <= self.engine.default_sprint_hours <= self.engine.max_sprint_hours):
            errors.append(
                f"Sprint hours must be between {self.engine.min_sprint_hours} and {self.engine.max_sprint_hours}"
            )
        
        if self.engine.commit_poll_minutes <= 0:
            errors.append("Commit poll interval must be positive")
        
        if self.engine.poll_timeout_seconds <= 0:
            errors.append("Poll timeout must be positive")
        
        if self.github.per_page <= 0 or self.github.per_page > 100:
            errors.append("GitHub commits per page must be between 1 and 100")
        
        return errors


config = ConfigManager()
