"""Tests for fetch_feed.fetch_records module."""

from unittest.mock import Mock

import pytest
import requests

from common.errors import DecodeError, DownloadError
from fetch_feed.fetch_records import fetch_vulnerability

API_URL = "https://api.osv.dev/v1"


def _response(status_code: int = 200, payload=None) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


class TestFetchVulnerability:
    def test_fetches_and_parses_record(self) -> None:
        session = Mock()
        session.get.return_value = _response(payload={
            "id": "GHSA-aaaa-1111-2222",
            "modified": "2024-01-01T00:00:00Z",
            "summary": "Prototype pollution",
        })

        vuln = fetch_vulnerability(API_URL + "/", "GHSA-aaaa-1111-2222", session, timeout=5)

        session.get.assert_called_once_with(
            "https://api.osv.dev/v1/vulns/GHSA-aaaa-1111-2222", timeout=5
        )
        assert vuln.id == "GHSA-aaaa-1111-2222"
        assert vuln.summary == "Prototype pollution"

    def test_non_200_raises_download_error(self) -> None:
        session = Mock()
        session.get.return_value = _response(status_code=404)

        with pytest.raises(DownloadError, match="HTTP 404"):
            fetch_vulnerability(API_URL, "GHSA-missing", session)

    def test_network_failure_raises_download_error(self) -> None:
        session = Mock()
        session.get.side_effect = requests.Timeout("timed out")

        with pytest.raises(DownloadError, match="timed out"):
            fetch_vulnerability(API_URL, "GHSA-slow", session)

    def test_invalid_json_raises_decode_error(self) -> None:
        response = _response()
        response.json.side_effect = ValueError("Expecting value")
        session = Mock()
        session.get.return_value = response

        with pytest.raises(DecodeError):
            fetch_vulnerability(API_URL, "GHSA-broken", session)

    def test_missing_id_raises_decode_error(self) -> None:
        session = Mock()
        session.get.return_value = _response(payload={"summary": "no id"})

        with pytest.raises(DecodeError):
            fetch_vulnerability(API_URL, "GHSA-noid", session)

    def test_non_object_body_raises_decode_error(self) -> None:
        session = Mock()
        session.get.return_value = _response(payload=["not", "an", "object"])

        with pytest.raises(DecodeError):
            fetch_vulnerability(API_URL, "GHSA-list", session)
