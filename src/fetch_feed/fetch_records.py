"""Fetch full vulnerability records from the OSV API."""

import logging

import requests

from common.errors import DecodeError, DownloadError
from fetch_feed.models import VulnerabilityDetail

logger = logging.getLogger(__name__)


def fetch_vulnerability(
    api_url: str,
    vuln_id: str,
    session: requests.Session,
    timeout: int = 30,
) -> VulnerabilityDetail:
    """
    Fetch one vulnerability by id.

    Args:
        api_url: Base API URL (e.g. "https://api.osv.dev/v1")
        vuln_id: Record id (e.g. "GHSA-xxxx-xxxx-xxxx")
        session: requests session to reuse connections
        timeout: Request timeout in seconds

    Returns:
        Parsed VulnerabilityDetail

    Raises:
        DownloadError: On network failure or a non-200 response
        DecodeError: If the body is not a valid vulnerability document
    """
    url = f"{api_url.rstrip('/')}/vulns/{vuln_id}"

    try:
        response = session.get(url, timeout=timeout)
    except requests.RequestException as exc:
        raise DownloadError(f"fetching vulnerability {vuln_id}: {exc}") from exc

    if response.status_code != 200:
        raise DownloadError(f"HTTP {response.status_code} fetching vulnerability {vuln_id}")

    try:
        return VulnerabilityDetail.from_dict(response.json())
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise DecodeError(f"decoding vulnerability {vuln_id}: {exc}") from exc
