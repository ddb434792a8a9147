"""
GitHub API client for commit history polling.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Any
from urllib.parse import urlparse
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import config
from .errors import InvalidUrl
from .models import CommitRecord


logger = logging.getLogger(__name__)

SUPPORTED_HOSTS = {"github.com", "www.github.com"}


class GitHubAPIError(Exception):
    """Custom exception for GitHub API errors."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def parse_repo_url(repo_url: str) -> tuple[str, str]:
    """Parse GitHub repository URL to extract owner and repo name."""
    if not repo_url or not isinstance(repo_url, str):
        raise InvalidUrl("Repository URL is required")

    parsed = urlparse(repo_url.strip())
    if parsed.scheme not in ("http", "https") or (parsed.hostname or "").lower() not in SUPPORTED_HOSTS:
        raise InvalidUrl(f"Invalid GitHub repository URL: {repo_url}")

    path_parts = [part for part in parsed.path.split('/') if part]
    if len(path_parts) < 2:
        raise InvalidUrl(f"Invalid GitHub repository URL: {repo_url}")

    owner = path_parts[0]
    repo = path_parts[1]

    if repo.lower().endswith('.git'):
        repo = repo[:-4]

    if not repo:
        raise InvalidUrl(f"Invalid GitHub repository URL: {repo_url}")

    return owner, repo


def normalize_repo_url(repo_url: str) -> str:
    owner, repo = parse_repo_url(repo_url)
    return f"https://github.com/{owner}/{repo}"


def to_commit_record(commit_data: Dict[str, Any]) -> CommitRecord:
    """Reduce a GitHub commit payload to the fields the engine keeps."""
    commit = commit_data.get('commit') or {}
    author = commit.get('author') or {}
    login = (commit_data.get('author') or {}).get('login')
    message = str(commit.get('message') or '').split('\n')[0]

    return CommitRecord(
        sha=str(commit_data.get('sha', ''))[:7],
        message=message,
        author=str(author.get('name') or login or 'Unknown'),
        date=str(author.get('date') or '')
    )


class GitHubClient:
    """GitHub API client with transport retries and error handling."""

    def __init__(self, token: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[int] = None, max_retries: Optional[int] = None,
                 per_page: Optional[int] = None):
        self.base_url = (base_url or config.github.base_url).rstrip('/')
        self.token = token if token is not None else config.github.token
        self.timeout = timeout if timeout is not None else config.github.timeout
        self.max_retries = max_retries if max_retries is not None else config.github.max_retries
        self.per_page = per_page if per_page is not None else config.github.per_page

        self.session = requests.Session()
        retry_strategy = Retry(
            total=self.max_retries,
            backoff_factor=1,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        self.session.headers.update({"Accept": "application/vnd.github+json"})
        if self.token:
            self.session.headers.update({"Authorization": f"token {self.token}"})

    def _make_request(self, endpoint: str, params: Optional[Dict] = None) -> Any:
        """Make a request to GitHub API with error handling."""
        url = f"{self.base_url}/{endpoint}"

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"GitHub API request failed: {e}")
            raise GitHubAPIError(f"API request failed: {e}")

        if response.status_code in (403, 429) and response.headers.get('X-RateLimit-Remaining') == '0':
            reset = response.headers.get('X-RateLimit-Reset')
            detail = "GitHub API rate limit exceeded"
            if reset and reset.isdigit():
                reset_at = datetime.fromtimestamp(int(reset), tz=timezone.utc)
                detail += f"; resets at {reset_at.isoformat()}"
            logger.warning(detail)
            raise GitHubAPIError(detail, status=response.status_code)

        if response.status_code == 404:
            raise GitHubAPIError("Repository not found or private", status=404)

        if not response.ok:
            raise GitHubAPIError(
                f"GitHub API error ({response.status_code}): {response.text[:160]}",
                status=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise GitHubAPIError(f"Malformed GitHub API response: {e}", status=response.status_code)

    def fetch_commits(self, repo_url: str) -> List[CommitRecord]:
        """Get the most recent commits of a repository, newest first."""
        owner, repo = parse_repo_url(repo_url)

        payload = self._make_request(f"repos/{owner}/{repo}/commits", {"per_page": self.per_page})
        if not isinstance(payload, list):
            raise GitHubAPIError("Malformed GitHub API response: expected a list of commits")

        commits = [to_commit_record(commit_data) for commit_data in payload]
        logger.info(f"Fetched {len(commits)} commits from {owner}/{repo}")
        return commits

    def close(self) -> None:
        self.session.close()
