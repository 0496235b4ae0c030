"""Cache purge notifications for content changes."""

import logging
from dataclasses import dataclass, field
from urllib.parse import quote

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

DEFAULT_HEADER = "X-Purge-Key"
DEFAULT_TIMEOUT = 10


class PurgeError(RuntimeError):
    """Raised when a purge notification could not be delivered."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class PurgeConfig:
    """Where and how to send purge notifications."""

    base_url: str
    purge_path: str
    purge_key: str = field(repr=False)
    header_name: str = DEFAULT_HEADER
    timeout: int = DEFAULT_TIMEOUT


@dataclass(frozen=True)
class PurgeRequest:
    method: str
    url: str
    headers: dict = field(repr=False)


def get_purge_config() -> PurgeConfig:
    """Build purge configuration from Django settings.

    Returns:
        PurgeConfig populated from SITE_URL and the PURGE_* settings
    """
    return PurgeConfig(
        base_url=(getattr(settings, "SITE_URL", "") or "").strip(),
        purge_path=(getattr(settings, "PURGE_PATH", "") or "").strip(),
        purge_key=(getattr(settings, "PURGE_KEY", "") or "").strip(),
        header_name=getattr(settings, "PURGE_HEADER", None) or DEFAULT_HEADER,
        timeout=getattr(settings, "PURGE_TIMEOUT", None) or DEFAULT_TIMEOUT,
    )


def should_purge() -> bool:
    """Check if cache purging is enabled.

    Returns:
        True if both SITE_URL and PURGE_KEY are configured
    """
    site_url = getattr(settings, "SITE_URL", None)
    purge_key = getattr(settings, "PURGE_KEY", None)
    return bool(site_url and site_url.strip() and purge_key and purge_key.strip())


def _purge_root(config: PurgeConfig) -> str:
    base_url = config.base_url.rstrip("/")
    if not base_url:
        raise ValueError("SITE_URL not configured")
    if not base_url.startswith(("http://", "https://")):
        raise ValueError(f"SITE_URL must start with http:// or https://, got: {base_url}")

    purge_path = config.purge_path.strip("/")
    return f"{base_url}/{purge_path}" if purge_path else base_url


def build_purge_url(identifier: str, config: PurgeConfig) -> str:
    """Build the purge URL for a content item.

    The identifier is percent-encoded as a single path segment, so slugs with
    spaces or slashes still produce a well-formed URL.

    Args:
        identifier: Content slug
        config: Purge configuration

    Returns:
        Absolute URL of the form ``{base}{path}/{identifier}/``

    Raises:
        ValueError: If the identifier is empty or the base URL is invalid
    """
    if not identifier:
        raise ValueError("Content identifier must not be empty")

    return f"{_purge_root(config)}/{quote(identifier, safe='')}/"


def build_purge_request(identifier: str, config: PurgeConfig) -> PurgeRequest:
    """Build the POST request that purges one content item."""
    return PurgeRequest(
        method="POST",
        url=build_purge_url(identifier, config),
        headers={config.header_name: config.purge_key},
    )


def build_purge_all_request(config: PurgeConfig) -> PurgeRequest:
    """Build the GET request that asks the cache layer to drop everything."""
    return PurgeRequest(
        method="GET",
        url=_purge_root(config),
        headers={config.header_name: config.purge_key},
    )


def send_purge_request(request: PurgeRequest, timeout: int = DEFAULT_TIMEOUT) -> int:
    """Send a purge request to the cache layer.

    Args:
        request: Purge request to send
        timeout: Request timeout in seconds

    Returns:
        HTTP status code of the (successful) response

    Raises:
        PurgeError: If the request fails or the endpoint returns a non-2xx status
    """
    try:
        response = requests.request(
            request.method,
            request.url,
            headers=request.headers,
            timeout=timeout,
            allow_redirects=False,
        )
    except requests.Timeout as e:
        raise PurgeError(f"Purge request to {request.url} timed out") from e
    except requests.RequestException as e:
        raise PurgeError(f"Purge request to {request.url} failed: {e}") from e

    # A redirect would turn the POST into a GET, so 3xx counts as a failure
    if not 200 <= response.status_code < 300:
        raise PurgeError(
            f"Purge endpoint {request.url} returned HTTP {response.status_code}",
            status_code=response.status_code,
        )
    return response.status_code


def notify(
    identifier: str,
    base_url: str,
    purge_path: str,
    purge_key: str,
    *,
    header_name: str = DEFAULT_HEADER,
    timeout: int = DEFAULT_TIMEOUT,
) -> None:
    """Ask the cache layer to purge one content item, best effort.

    Sends a single POST and never raises: the change that triggered the purge
    must not fail because the cache layer is unreachable.
    """
    config = PurgeConfig(
        base_url=base_url,
        purge_path=purge_path,
        purge_key=purge_key,
        header_name=header_name,
        timeout=timeout,
    )
    try:
        request = build_purge_request(identifier, config)
        status_code = send_purge_request(request, timeout=config.timeout)
    except (PurgeError, ValueError) as e:
        logger.warning("Cache purge for %r failed: %s", identifier, e)
        return

    logger.info("Purged cached copy of %r (HTTP %s)", identifier, status_code)
