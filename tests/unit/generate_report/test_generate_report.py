"""Tests for generate_report module."""

import json

from checkpoint.store import InMemoryCheckpointStore, SQLCheckpointStore
from classify_vulnerabilities.models import VulnerabilityClassification
from generate_report.cli import main, parse_generate_report_args
from generate_report.generate_report import build_report


def _classification(vuln_id: str) -> VulnerabilityClassification:
    return VulnerabilityClassification(
        vulnerability_id=vuln_id,
        verifiability="non-verifiable",
        exploitability_context="runtime-critical",
        attack_vector="local-only",
        impact_scope="privilege-escalation",
        remediation_complexity="workaround-available",
        temporal_classification="zero-day",
        reasoning="",
        processed_at="2024-01-05T10:00:00+00:00",
        osv_url=f"https://osv.dev/vulnerability/{vuln_id}",
        osv_published="",
        osv_modified="2024-01-02T00:00:00Z",
        osv_withdrawn="",
        processing_time=0.5,
        input_tokens=1,
        output_tokens=2,
        total_tokens=3,
    )


class TestBuildReport:
    def test_serializes_all_classifications(self) -> None:
        store = InMemoryCheckpointStore()
        store.store_classification("GHSA-bbbb", _classification("GHSA-bbbb"))
        store.store_classification("GHSA-aaaa", _classification("GHSA-aaaa"))

        report = build_report(store)

        assert [r["vulnerability_id"] for r in report] == ["GHSA-aaaa", "GHSA-bbbb"]
        assert report[0]["impact_scope"] == "privilege-escalation"
        assert report[0]["processing_time"] == 0.5

    def test_empty_store(self) -> None:
        assert build_report(InMemoryCheckpointStore()) == []


class TestMain:
    def test_default_output(self) -> None:
        assert parse_generate_report_args([]).output == "vulnerability_report.json"

    def test_writes_report_from_database(self, tmp_path) -> None:
        db_url = f"sqlite:///{tmp_path / 'vulns.db'}"
        store = SQLCheckpointStore(db_url)
        store.store_classification("GHSA-aaaa", _classification("GHSA-aaaa"))
        store.close()

        config_path = tmp_path / "config.yaml"
        config_path.write_text(f"store:\n  database_url: {db_url}\n")
        output = tmp_path / "out" / "report.json"

        assert main(["--config", str(config_path), "--output", str(output)]) == 0

        records = json.loads(output.read_text())
        assert len(records) == 1
        assert records[0]["osv_url"] == "https://osv.dev/vulnerability/GHSA-aaaa"

    def test_empty_database_writes_nothing(self, tmp_path) -> None:
        config_path = tmp_path / "config.yaml"
        config_path.write_text(f"store:\n  database_url: sqlite:///{tmp_path / 'empty.db'}\n")
        output = tmp_path / "report.json"

        assert main(["--config", str(config_path), "--output", str(output)]) == 0
        assert not output.exists()

    def test_bad_config(self, tmp_path) -> None:
        config_path = tmp_path / "config.yaml"
        config_path.write_text("store:\n  backend: mongo\n")

        assert main(["--config", str(config_path)]) == 1
