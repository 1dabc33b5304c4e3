"""
Utility functions for prom-request.

Includes:
- Status code classification
- URL sanitization for safe logging
"""

from typing import Optional, Set
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse


# Default sensitive parameter names that should be masked in logs
DEFAULT_SENSITIVE_PARAMS = {
    'api_key',
    'apikey',
    'api-key',
    'token',
    'access_token',
    'refresh_token',
    'key',
    'secret',
    'password',
    'auth',
    'client_secret',
    'session',
    'session_id',
}


def is_ok(status_code: int) -> bool:
    """
    Is status code 2xx.

    Examples:
        >>> is_ok(200), is_ok(299)
        (True, True)
        >>> is_ok(199), is_ok(300)
        (False, False)
    """
    return 200 <= status_code < 300


def sanitize_url(
    url: str,
    extra_params: Optional[Set[str]] = None,
    mask: str = 'REDACTED'
) -> str:
    """
    Mask sensitive query parameters in URL for safe logging.

    Args:
        url: The URL to sanitize
        extra_params: Additional parameter names to mask (case-insensitive)
        mask: The string to use for masking (default: 'REDACTED')

    Returns:
        Sanitized URL with sensitive parameters masked

    Examples:
        >>> sanitize_url('https://api.example.com/data?api_key=secret123')
        'https://api.example.com/data?api_key=REDACTED'
    """
    if not url:
        return url

    sensitive_params = DEFAULT_SENSITIVE_PARAMS | (
        {p.lower() for p in extra_params} if extra_params else set()
    )

    try:
        parsed = urlparse(url)
    except ValueError:
        # Don't risk exposing the original URL
        return '<URL sanitization failed>'

    if not parsed.query:
        return url

    params = parse_qs(parsed.query, keep_blank_values=True)
    sanitized = {
        name: [mask] * len(values) if name.lower() in sensitive_params else values
        for name, values in params.items()
    }

    return urlunparse(parsed._replace(query=urlencode(sanitized, doseq=True)))
