"""GitHub Git Data API client."""

import logging
import os
import subprocess
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

from .exceptions import GitHubAPIError
from .models import Blob, CreateBlob, CreateTree, NewBlob, Tree

logger = logging.getLogger(__name__)

# Retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_MIN_WAIT = 1  # seconds
DEFAULT_MAX_WAIT = 10  # seconds

# Retryable exceptions
RETRYABLE_EXCEPTIONS = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.PoolTimeout,
    httpx.NetworkError,
)


def get_token_from_gh_cli() -> str | None:
    """
    Get GitHub token from gh cli.

    Returns:
        Token string or None if gh cli not available/authenticated
    """
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0 and result.stdout.strip():
            logger.info("Using token from gh cli")
            return result.stdout.strip()
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        logger.debug("gh cli not available: %s", e)
    return None


def get_token(token: str | None = None, use_gh_cli: bool = False) -> str | None:
    """
    Get GitHub token from various sources.

    Priority:
    1. Explicitly provided token
    2. Environment variable GH_TOKEN / GITHUB_TOKEN
    3. gh cli (`gh auth token`) - only if use_gh_cli=True
    """
    if token:
        logger.debug("Using explicitly provided token")
        return token

    env_token = os.environ.get("GH_TOKEN") or os.environ.get("GITHUB_TOKEN")
    if env_token:
        logger.info("Using token from environment variable")
        return env_token

    if use_gh_cli:
        return get_token_from_gh_cli()

    return None


def is_retryable(exc: BaseException) -> bool:
    """Network failures and 5xx answers are retried; everything else is final."""
    if isinstance(exc, RETRYABLE_EXCEPTIONS):
        return True
    return isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code >= 500


def create_retry_decorator(max_retries: int = DEFAULT_MAX_RETRIES):
    """Create a retry decorator with specified max retries."""
    return retry(
        retry=retry_if_exception(is_retryable),
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=1, min=DEFAULT_MIN_WAIT, max=DEFAULT_MAX_WAIT),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


class GitDataClient:
    """Client for the low-level Git Data endpoints (blobs and trees)."""

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
        use_gh_cli: bool = False,
        max_retries: int = DEFAULT_MAX_RETRIES,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize Git Data client.

        Args:
            token: GitHub personal access token (optional)
            base_url: Custom base URL (defaults to GitHub API)
            timeout: Request timeout in seconds
            use_gh_cli: Use gh cli credentials (requires user consent)
            max_retries: Maximum number of attempts per request (default: 3)
            transport: httpx transport override (tests, proxies)
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.transport = transport
        self.headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "gitdata-client",
        }

        resolved_token = get_token(token, use_gh_cli=use_gh_cli)
        if resolved_token:
            self.headers["Authorization"] = f"token {resolved_token}"
            logger.debug("Git Data client initialized with token")
        else:
            logger.warning("Git Data client initialized without token (rate limited)")
        logger.info("Git Data client ready, base_url=%s, max_retries=%d", self.base_url, max_retries)

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make HTTP request to the GitHub API with retry, returning the JSON body."""
        url = f"{self.base_url}{endpoint}"

        @create_retry_decorator(self.max_retries)
        def do_request() -> httpx.Response:
            logger.debug("Request: %s %s", method, url)
            with httpx.Client(
                timeout=self.timeout, headers=self.headers, transport=self.transport
            ) as client:
                response = client.request(method, url, **kwargs)
                logger.debug(
                    "Response: %s %s (status=%d)",
                    method,
                    endpoint,
                    response.status_code,
                )
                if response.status_code >= 500:
                    logger.warning("Server error %d, will retry", response.status_code)
                    raise httpx.HTTPStatusError(
                        f"Server error {response.status_code}",
                        request=response.request,
                        response=response,
                    )
                return response

        try:
            response = do_request()
        except httpx.HTTPStatusError as e:
            raise GitHubAPIError(str(e), e.response.status_code) from e

        if response.is_error:
            logger.error("%s %s failed with status %d", method, endpoint, response.status_code)
            raise GitHubAPIError(
                f"GitHub API returned HTTP {response.status_code} for {method} {endpoint}: "
                f"{_error_message(response)}",
                response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise GitHubAPIError(
                f"GitHub API returned a non-JSON body for {method} {endpoint}",
                response.status_code,
            ) from e

    def get_blob(self, owner: str, repo: str, sha: str) -> Blob:
        """
        Get a blob.

        Args:
            owner: Repository owner
            repo: Repository name
            sha: Blob SHA

        Returns:
            Blob with base64 content
        """
        logger.info("Fetching blob: %s/%s sha=%s", owner, repo, sha)
        data = self._request("GET", f"/repos/{owner}/{repo}/git/blobs/{sha}")
        blob = Blob.decode(data)
        logger.debug("Blob fetched: %s (%d bytes)", sha, blob.size)
        return blob

    def create_blob(self, owner: str, repo: str, blob: CreateBlob) -> NewBlob:
        """
        Create a blob.

        Args:
            owner: Repository owner
            repo: Repository name
            blob: Blob content and its encoding

        Returns:
            NewBlob with the SHA of the stored blob
        """
        logger.info("Creating blob: %s/%s encoding=%s", owner, repo, blob.encoding.value)
        data = self._request("POST", f"/repos/{owner}/{repo}/git/blobs", json=blob.encode())
        return NewBlob.decode(data)

    def get_tree(self, owner: str, repo: str, sha: str, recursive: bool = False) -> Tree:
        """
        Get a tree listing.

        Args:
            owner: Repository owner
            repo: Repository name
            sha: Tree SHA (or a ref/commit resolving to one)
            recursive: List every nested entry, not only the top level

        Returns:
            Tree with its entries in API order
        """
        logger.info("Fetching tree: %s/%s sha=%s recursive=%s", owner, repo, sha, recursive)
        params = {"recursive": "1"} if recursive else {}
        data = self._request("GET", f"/repos/{owner}/{repo}/git/trees/{sha}", params=params)
        tree = Tree.decode(data)
        if tree.truncated:
            logger.warning(
                "Tree listing %s truncated at %d entries, listing is incomplete",
                tree.sha,
                len(tree.git_trees),
            )
        logger.debug("Tree fetched: %s (%d entries)", tree.sha, len(tree.git_trees))
        return tree

    def create_tree(self, owner: str, repo: str, tree: CreateTree) -> Tree:
        """
        Create a tree.

        Without a base tree the new tree holds only the given entries and every
        other path of the repository will appear deleted once committed.

        Args:
            owner: Repository owner
            repo: Repository name
            tree: Tree creation request

        Returns:
            The created Tree
        """
        logger.info(
            "Creating tree: %s/%s entries=%d base_tree=%s",
            owner, repo, len(tree.tree), tree.base_tree_sha
        )
        if tree.base_tree_sha is None:
            logger.warning("Creating tree without base_tree, other paths will appear deleted")
        data = self._request("POST", f"/repos/{owner}/{repo}/git/trees", json=tree.encode())
        return Tree.decode(data)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "message" in body:
        return str(body["message"])
    return response.text
