"""Tests for checkpoint.store module."""

from dataclasses import replace

import pytest
from sqlalchemy import text

from checkpoint.store import (
    InMemoryCheckpointStore,
    SQLCheckpointStore,
    create_store,
)
from classify_vulnerabilities.models import VulnerabilityClassification
from common.config import StoreConfig
from common.errors import ReadError, WriteError


def _classification(vuln_id: str = "GHSA-aaaa-1111-2222", **overrides) -> VulnerabilityClassification:
    defaults = dict(
        vulnerability_id=vuln_id,
        verifiability="verifiable",
        exploitability_context="direct-dependency",
        attack_vector="network-accessible",
        impact_scope="code-execution",
        remediation_complexity="simple-update",
        temporal_classification="stable-mature",
        reasoning="Patched upstream",
        processed_at="2024-01-05T10:00:00+00:00",
        osv_url=f"https://osv.dev/vulnerability/{vuln_id}",
        osv_published="2024-01-01T00:00:00Z",
        osv_modified="2024-01-02T00:00:00Z",
        osv_withdrawn="",
        processing_time=1.25,
        input_tokens=100,
        output_tokens=20,
        total_tokens=120,
    )
    defaults.update(overrides)
    return VulnerabilityClassification(**defaults)


@pytest.fixture
def sql_store():
    store = SQLCheckpointStore("sqlite://", collection="test_classifications")
    yield store
    store.close()


class TestSQLCheckpointStore:
    def test_watermark_absent_reads_empty(self, sql_store) -> None:
        assert sql_store.get_watermark() == ""

    def test_watermark_round_trip_and_overwrite(self, sql_store) -> None:
        sql_store.set_watermark("2024-01-01T00:00:00Z")
        sql_store.set_watermark("2024-01-02T00:00:00Z")

        assert sql_store.get_watermark() == "2024-01-02T00:00:00Z"
        with sql_store.engine.connect() as conn:
            count = conn.execute(text("SELECT COUNT(*) FROM processing_state")).scalar()
        assert count == 1

    def test_store_and_get_classification(self, sql_store) -> None:
        classification = _classification()

        sql_store.store_classification(classification.vulnerability_id, classification)

        assert sql_store.get_classification("GHSA-aaaa-1111-2222") == classification

    def test_store_is_an_upsert(self, sql_store) -> None:
        first = _classification()
        second = replace(first, impact_scope="data-confidentiality", total_tokens=99)

        sql_store.store_classification(first.vulnerability_id, first)
        sql_store.store_classification(second.vulnerability_id, second)

        stored = sql_store.get_all_classifications()
        assert stored == [second]

    def test_get_missing_classification(self, sql_store) -> None:
        assert sql_store.get_classification("GHSA-none") is None

    def test_get_all_ordered_by_id(self, sql_store) -> None:
        for vuln_id in ("GHSA-cccc", "GHSA-aaaa", "GHSA-bbbb"):
            sql_store.store_classification(vuln_id, _classification(vuln_id))

        ids = [c.vulnerability_id for c in sql_store.get_all_classifications()]
        assert ids == ["GHSA-aaaa", "GHSA-bbbb", "GHSA-cccc"]

    def test_state_survives_new_store_on_same_engine(self, sql_store) -> None:
        sql_store.set_watermark("2024-01-03T00:00:00Z")
        sql_store.store_classification("GHSA-aaaa", _classification("GHSA-aaaa"))

        reopened = SQLCheckpointStore(
            "sqlite://", collection="test_classifications", engine=sql_store.engine
        )

        assert reopened.get_watermark() == "2024-01-03T00:00:00Z"
        assert reopened.get_classification("GHSA-aaaa") is not None

    def test_write_failure_raises_write_error(self, sql_store) -> None:
        with sql_store.engine.begin() as conn:
            conn.execute(text("DROP TABLE test_classifications"))

        with pytest.raises(WriteError, match="GHSA-aaaa"):
            sql_store.store_classification("GHSA-aaaa", _classification("GHSA-aaaa"))

    def test_read_failure_raises_read_error(self, sql_store) -> None:
        with sql_store.engine.begin() as conn:
            conn.execute(text("DROP TABLE processing_state"))

        with pytest.raises(ReadError):
            sql_store.get_watermark()

    def test_rejects_unsafe_collection_name(self) -> None:
        with pytest.raises(ValueError, match="collection"):
            SQLCheckpointStore("sqlite://", collection="bad; DROP TABLE x")


class TestInMemoryCheckpointStore:
    def test_watermark(self) -> None:
        store = InMemoryCheckpointStore()

        assert store.get_watermark() == ""
        store.set_watermark("2024-01-01T00:00:00Z")
        assert store.get_watermark() == "2024-01-01T00:00:00Z"
        assert store.state.updated_at is not None

    def test_classifications(self) -> None:
        store = InMemoryCheckpointStore()
        store.store_classification("GHSA-bbbb", _classification("GHSA-bbbb"))
        store.store_classification("GHSA-aaaa", _classification("GHSA-aaaa"))

        assert store.get_classification("GHSA-aaaa").vulnerability_id == "GHSA-aaaa"
        assert [c.vulnerability_id for c in store.get_all_classifications()] == [
            "GHSA-aaaa", "GHSA-bbbb"
        ]


class TestCreateStore:
    def test_memory_backend(self) -> None:
        assert isinstance(create_store(StoreConfig(backend="memory")), InMemoryCheckpointStore)

    def test_sql_backend(self) -> None:
        store = create_store(StoreConfig(backend="sql", database_url="sqlite://"))
        try:
            assert isinstance(store, SQLCheckpointStore)
        finally:
            store.close()

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError, match="Unsupported"):
            create_store(StoreConfig(backend="mongo"))
