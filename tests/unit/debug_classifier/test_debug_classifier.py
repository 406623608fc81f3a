"""Tests for debug_classifier module."""

import json
from unittest.mock import MagicMock, patch

import pytest

from classify_vulnerabilities.llm import ChatResponse, StructuredResponse
from common.errors import DownloadError
from debug_classifier.cli import main
from debug_classifier.debug_classifier import build_debug_prompt, classify_with_custom_prompt
from debug_classifier.helpers import load_vulnerability_from_file, parse_debug_classifier_args
from fetch_feed.models import VulnerabilityDetail

SAMPLE = {
    "id": "GHSA-7rqq-prvp-x9jh",
    "modified": "2024-01-02T00:00:00Z",
    "summary": "Path traversal in static file server",
}

REPLY = {
    "verifiability": "verifiable",
    "exploitability_context": "runtime-critical",
    "attack_vector": "network-accessible",
    "impact_scope": "data-confidentiality",
    "remediation_complexity": "simple-update",
    "temporal_classification": "stable-mature",
    "reasoning": "Reads arbitrary files",
}


@pytest.fixture
def sample_path(tmp_path):
    path = tmp_path / "sample.json"
    path.write_text(json.dumps(SAMPLE))
    return str(path)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("llm:\n  api_key: test-key\n")
    return str(path)


class TestParseArgs:
    def test_requires_a_source(self) -> None:
        with pytest.raises(SystemExit):
            parse_debug_classifier_args([])

    def test_sources_are_exclusive(self) -> None:
        with pytest.raises(SystemExit):
            parse_debug_classifier_args(["--vuln", "GHSA-1", "--sample", "x.json"])


class TestLoadVulnerabilityFromFile:
    def test_loads_sample(self, sample_path) -> None:
        vuln = load_vulnerability_from_file(sample_path)

        assert vuln.id == "GHSA-7rqq-prvp-x9jh"

    def test_rejects_non_object(self, tmp_path) -> None:
        path = tmp_path / "list.json"
        path.write_text("[]")

        with pytest.raises(ValueError):
            load_vulnerability_from_file(str(path))


class TestClassifyWithCustomPrompt:
    def test_sends_single_user_message(self) -> None:
        backend = MagicMock()
        backend.chat.return_value = ChatResponse(
            content="Likely RCE", input_tokens=7, output_tokens=3, total_tokens=10
        )
        vuln = VulnerabilityDetail(id="GHSA-1", summary="Deserialization")

        result = classify_with_custom_prompt(vuln, backend, "Is this RCE?")

        messages = backend.chat.call_args.args[0]
        assert len(messages) == 1
        assert messages[0]["role"] == "user"
        assert messages[0]["content"] == build_debug_prompt("Is this RCE?", vuln)
        assert messages[0]["content"].startswith("Is this RCE?\n\nVulnerability Data:\n")
        assert result.raw_response == "Likely RCE"
        assert result.total_tokens == 10
        backend.classify.assert_not_called()


class TestMain:
    @patch("debug_classifier.cli.create_backend")
    def test_classifies_sample(self, mock_create_backend, sample_path, config_path, capsys) -> None:
        backend = MagicMock()
        backend.classify.return_value = StructuredResponse(result=dict(REPLY))
        mock_create_backend.return_value = backend

        assert main(["--config", config_path, "--sample", sample_path]) == 0

        printed = json.loads(capsys.readouterr().out)
        assert printed["vulnerability_id"] == "GHSA-7rqq-prvp-x9jh"
        assert printed["impact_scope"] == "data-confidentiality"

    @patch("debug_classifier.cli.create_backend")
    def test_custom_prompt_prints_raw_reply(
        self, mock_create_backend, sample_path, config_path, capsys
    ) -> None:
        backend = MagicMock()
        backend.chat.return_value = ChatResponse(content="It is a path traversal.")
        mock_create_backend.return_value = backend

        assert main(["--config", config_path, "--sample", sample_path, "--prompt", "Explain"]) == 0

        out = capsys.readouterr().out
        assert "=== LLM Response ===" in out
        assert "It is a path traversal." in out

    @patch("debug_classifier.cli.fetch_vulnerability")
    def test_fetch_failure(self, mock_fetch, config_path) -> None:
        mock_fetch.side_effect = DownloadError("HTTP 404 fetching vulnerability GHSA-x")

        assert main(["--config", config_path, "--vuln", "GHSA-x"]) == 1

    @patch("debug_classifier.cli.create_backend")
    def test_invalid_reply_fails(self, mock_create_backend, sample_path, config_path) -> None:
        backend = MagicMock()
        backend.classify.return_value = StructuredResponse(result={"verifiability": "maybe"})
        mock_create_backend.return_value = backend

        assert main(["--config", config_path, "--sample", sample_path]) == 1
