"""GitHub API client: the single chokepoint for every outbound request."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from devtrackr.errors import (
    AuthError,
    ErrorCode,
    NetworkError,
    RateLimitError,
)
from devtrackr.rate_limit import (
    QuotaStore,
    default_tracker,
    parse_rate_limit_headers,
    utc_now,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_URL = "https://api.github.com"
DEFAULT_USER_AGENT = "devtrackr"
# Stable REST media type and version; preview media types are never sent
ACCEPT_HEADER = "application/vnd.github.v3+json"
API_VERSION = "2022-11-28"

DEFAULT_PAGE_SIZE = 100
MAX_PAGINATED_ITEMS = 10_000


class GitHubClient:
    """Client for the GitHub REST API.

    Authenticates every call, feeds the quota tracker and turns transport
    and HTTP failures into the devtrackr error taxonomy. It never retries;
    wrap calls in ``devtrackr.retry.with_retry`` for that.
    """

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float | None = 30.0,
        quota_tracker: QuotaStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub Personal Access Token
            base_url: GitHub API base URL
            user_agent: Value of the User-Agent header
            timeout: Transport timeout in seconds (None waits indefinitely)
            quota_tracker: Where quota snapshots are recorded (process-wide default)
            transport: Custom httpx transport, used by tests
            clock: Returns the current aware datetime
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.quota_tracker = quota_tracker if quota_tracker is not None else default_tracker
        self.clock = clock
        self.headers = {
            "Authorization": f"token {token}",
            "Accept": ACCEPT_HEADER,
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": user_agent,
        }

        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    def _get_http_client(self) -> httpx.AsyncClient:
        """Return the persistent HTTP client, creating it on first use."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            )
        return self._http_client

    def build_url(self, endpoint: str) -> str:
        """Resolve an endpoint path (or absolute URL) to a full URL."""
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        if not endpoint.startswith("/"):
            endpoint = f"/{endpoint}"
        return f"{self.base_url}{endpoint}"

    def _update_rate_limit_info(
        self, response: httpx.Response
    ) -> tuple[int, int, int] | None:
        """Record quota headers from a response, if it carries them."""
        rate_limit = parse_rate_limit_headers(response.headers)
        if rate_limit is not None:
            self.quota_tracker.update(*rate_limit)
        return rate_limit

    def _raise_for_status(
        self, response: httpx.Response, rate_limit: tuple[int, int, int] | None
    ) -> None:
        """Map a non-2xx response to exactly one taxonomy error.

        The order matters: quota exhaustion has to be told apart from other
        403s before the generic auth branch.
        """
        status = response.status_code

        if status == 401:
            raise AuthError(
                "Invalid or expired GitHub token. Please check your token and "
                "ensure it has not been revoked.",
                ErrorCode.AUTH_INVALID_TOKEN,
                status_code=status,
            )

        if status == 403 and rate_limit is not None and rate_limit[1] == 0:
            limit, remaining, reset = rate_limit
            reset_at = datetime.fromtimestamp(reset, tz=UTC)
            raise RateLimitError(
                f"GitHub API rate limit exceeded. Resets at {reset_at.isoformat()}",
                limit=limit,
                remaining=remaining,
                reset_at=reset_at,
                now=self.clock(),
                status_code=status,
            )

        if status == 403:
            raise AuthError(
                "Access forbidden. Check token permissions and ensure required "
                "scopes are granted.",
                ErrorCode.AUTH_INSUFFICIENT_SCOPES,
                status_code=status,
            )

        if not response.is_success:
            message = f"GitHub API error: {status} {response.reason_phrase}"
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("message"):
                message = str(body["message"])

            raise NetworkError(
                message,
                ErrorCode.API_ERROR,
                retryable=status >= 500,
                status_code=status,
            )

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Make one request and return the parsed JSON body.

        Args:
            endpoint: API path such as ``/users/octocat`` or an absolute URL
            method: HTTP method
            params: Query parameters
            body: JSON body, only sent for non-GET methods
            headers: Extra headers merged over the defaults

        Returns:
            Parsed JSON body, or None for an empty response

        Raises:
            AuthError: 401, or 403 without exhausted quota
            RateLimitError: 403 with ``X-RateLimit-Remaining: 0``
            NetworkError: Transport failure, other non-2xx, or unparsable body
        """
        url = self.build_url(endpoint)
        request_headers = {**self.headers, **(headers or {})}
        json_body = body if body is not None and method.upper() != "GET" else None

        logger.debug(f"{method} {url} params={params}")

        try:
            response = await self._get_http_client().request(
                method,
                url,
                params=params,
                json=json_body,
                headers=request_headers,
            )
        except httpx.TransportError as e:
            logger.info(f"Transport failure for {method} {url}: {type(e).__name__}")
            raise NetworkError(
                f"Network error: {str(e) or type(e).__name__}",
                ErrorCode.NETWORK_ERROR,
                retryable=True,
            ) from e

        rate_limit = self._update_rate_limit_info(response)
        self._raise_for_status(response, rate_limit)

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(
                "Failed to parse GitHub API response",
                ErrorCode.API_ERROR,
                retryable=False,
                status_code=response.status_code,
            ) from e

    async def request_model(
        self,
        endpoint: str,
        model_type: type[T] | Any,
        params: dict[str, Any] | None = None,
    ) -> T:
        """GET an endpoint and validate the body against a pydantic type.

        Raises:
            NetworkError: If the body does not match the expected shape
        """
        data = await self.request(endpoint, params=params)
        return validate_response(data, model_type, endpoint)

    async def paginate(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        per_page: int = DEFAULT_PAGE_SIZE,
        max_items: int = MAX_PAGINATED_ITEMS,
    ) -> list[Any]:
        """Collect a page-numbered list endpoint.

        Pages are requested while the previous one was full. Collection stops
        at ``max_items`` even if GitHub keeps returning full pages.

        Args:
            endpoint: API path of a list endpoint
            params: Extra query parameters
            per_page: Page size requested from GitHub
            max_items: Hard cap on the number of items returned

        Returns:
            All collected items, at most ``max_items``
        """
        base_params = dict(params or {})
        page = int(base_params.pop("page", 1))
        base_params.pop("per_page", None)

        results: list[Any] = []
        while True:
            data = await self.request(
                endpoint, params={**base_params, "per_page": per_page, "page": page}
            )

            if not isinstance(data, list):
                if data is not None:
                    results.append(data)
                break

            results.extend(data)
            logger.debug(f"Page {page} of {endpoint}: {len(data)} items")

            if len(results) >= max_items:
                logger.info(f"Stopped paginating {endpoint} at {max_items} items")
                del results[max_items:]
                break

            if len(data) < per_page:
                break
            page += 1

        return results

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> GitHubClient:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit with cleanup."""
        await self.close()


def validate_response(data: Any, model_type: type[T] | Any, endpoint: str = "") -> T:
    """Validate parsed JSON against a pydantic model or type expression.

    Raises:
        NetworkError: Non-retryable parse-class error on shape mismatch
    """
    try:
        return TypeAdapter(model_type).validate_python(data)  # type: ignore[no-any-return]
    except PydanticValidationError as e:
        raise NetworkError(
            f"Unexpected GitHub API response shape for {endpoint or 'request'}: "
            f"{e.error_count()} validation errors",
            ErrorCode.API_ERROR,
            retryable=False,
        ) from e
