"""Durable storage of classifications and the processing watermark.

Two backends share one interface: ``SQLCheckpointStore`` (any SQLAlchemy
database URL) and ``InMemoryCheckpointStore`` (dry runs and tests).
A missing watermark is not an error and reads as ``""``.
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from dataclasses import asdict, fields
from datetime import datetime, timezone
from typing import Iterator, Protocol

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from checkpoint.models import ProcessingState
from classify_vulnerabilities.models import VulnerabilityClassification
from common.config import StoreConfig
from common.errors import ReadError, WriteError

logger = logging.getLogger(__name__)

STATE_TABLE = "processing_state"
STATE_ID = "vulnerability_scanner"

_SQL_TYPES = {str: "TEXT", float: "REAL", int: "INTEGER"}
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class CheckpointStore(Protocol):
    def store_classification(
        self, vuln_id: str, classification: VulnerabilityClassification
    ) -> None: ...

    def get_watermark(self) -> str: ...

    def set_watermark(self, timestamp: str) -> None: ...

    def get_classification(self, vuln_id: str) -> VulnerabilityClassification | None: ...

    def get_all_classifications(self) -> list[VulnerabilityClassification]: ...

    def close(self) -> None: ...


class InMemoryCheckpointStore:
    """Process-local store; nothing survives a restart."""

    def __init__(self) -> None:
        self.classifications: dict[str, VulnerabilityClassification] = {}
        self.state: ProcessingState | None = None

    def store_classification(
        self, vuln_id: str, classification: VulnerabilityClassification
    ) -> None:
        self.classifications[vuln_id] = classification

    def get_watermark(self) -> str:
        return self.state.last_processed_timestamp if self.state else ""

    def set_watermark(self, timestamp: str) -> None:
        self.state = ProcessingState(
            last_processed_timestamp=timestamp,
            updated_at=datetime.now(timezone.utc),
        )

    def get_classification(self, vuln_id: str) -> VulnerabilityClassification | None:
        return self.classifications.get(vuln_id)

    def get_all_classifications(self) -> list[VulnerabilityClassification]:
        return [self.classifications[key] for key in sorted(self.classifications)]

    def close(self) -> None:
        pass


def _classification_columns() -> list[tuple[str, str]]:
    return [
        (f.name, _SQL_TYPES.get(f.type, "TEXT"))
        for f in fields(VulnerabilityClassification)
    ]


class SQLCheckpointStore:
    """Classification and watermark tables in a SQL database."""

    def __init__(
        self,
        database_url: str,
        collection: str = "vulnerability_classifications",
        engine: Engine | None = None,
    ) -> None:
        if not _IDENTIFIER.match(collection):
            raise ValueError(f"Invalid collection name: {collection!r}")

        self.collection = collection
        self.engine = engine or _create_engine(database_url)
        self._session_factory = sessionmaker(bind=self.engine)
        self._columns = [name for name, _ in _classification_columns()]
        self.ensure_tables()

    @contextmanager
    def get_session(self) -> Iterator[Session]:
        """Session with automatic commit/rollback."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ensure_tables(self) -> None:
        """Create the classification and state tables if they don't exist."""
        column_defs = ",\n".join(
            f"{name} {sql_type}"
            + (" PRIMARY KEY" if name == "vulnerability_id" else "")
            for name, sql_type in _classification_columns()
        )
        try:
            with self.get_session() as session:
                session.execute(text(
                    f"CREATE TABLE IF NOT EXISTS {self.collection} (\n{column_defs}\n)"
                ))
                session.execute(text(
                    f"""
                    CREATE TABLE IF NOT EXISTS {STATE_TABLE} (
                        state_id TEXT PRIMARY KEY,
                        last_processed_timestamp TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                    """
                ))
        except SQLAlchemyError as exc:
            raise WriteError(f"creating tables: {exc}") from exc

    def store_classification(
        self, vuln_id: str, classification: VulnerabilityClassification
    ) -> None:
        """Upsert a classification keyed by vulnerability id.

        Raises:
            WriteError: If the database rejects the write.
        """
        params = asdict(classification)
        params["vulnerability_id"] = vuln_id

        assignments = ", ".join(
            f"{name} = :{name}" for name in self._columns if name != "vulnerability_id"
        )
        update_stmt = text(
            f"UPDATE {self.collection} SET {assignments} WHERE vulnerability_id = :vulnerability_id"
        )
        insert_stmt = text(
            f"INSERT INTO {self.collection} ({', '.join(self._columns)}) "
            f"VALUES ({', '.join(':' + name for name in self._columns)})"
        )

        try:
            with self.get_session() as session:
                result = session.execute(update_stmt, params)
                if not result.rowcount:
                    session.execute(insert_stmt, params)
        except SQLAlchemyError as exc:
            raise WriteError(f"storing classification for {vuln_id}: {exc}") from exc

    def get_watermark(self) -> str:
        """Return the last processed timestamp, or "" if none was recorded.

        Raises:
            ReadError: If the state table cannot be read.
        """
        try:
            with self.get_session() as session:
                row = session.execute(
                    text(
                        f"SELECT last_processed_timestamp FROM {STATE_TABLE} "
                        "WHERE state_id = :state_id"
                    ),
                    {"state_id": STATE_ID},
                ).mappings().first()
        except SQLAlchemyError as exc:
            raise ReadError(f"getting last processed timestamp: {exc}") from exc

        if row is None:
            return ""
        return row["last_processed_timestamp"]

    def set_watermark(self, timestamp: str) -> None:
        """Record ``timestamp`` as the last processed timestamp.

        Raises:
            WriteError: If the database rejects the write.
        """
        params = {
            "state_id": STATE_ID,
            "timestamp": timestamp,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            with self.get_session() as session:
                result = session.execute(
                    text(
                        f"""
                        UPDATE {STATE_TABLE}
                        SET last_processed_timestamp = :timestamp,
                            updated_at = :updated_at
                        WHERE state_id = :state_id
                        """
                    ),
                    params,
                )
                if not result.rowcount:
                    session.execute(
                        text(
                            f"""
                            INSERT INTO {STATE_TABLE} (state_id, last_processed_timestamp, updated_at)
                            VALUES (:state_id, :timestamp, :updated_at)
                            """
                        ),
                        params,
                    )
        except SQLAlchemyError as exc:
            raise WriteError(f"updating last processed timestamp: {exc}") from exc

    def get_classification(self, vuln_id: str) -> VulnerabilityClassification | None:
        """Return a stored classification, or None if it doesn't exist."""
        try:
            with self.get_session() as session:
                row = session.execute(
                    text(
                        f"SELECT {', '.join(self._columns)} FROM {self.collection} "
                        "WHERE vulnerability_id = :vulnerability_id"
                    ),
                    {"vulnerability_id": vuln_id},
                ).mappings().first()
        except SQLAlchemyError as exc:
            raise ReadError(f"getting classification for {vuln_id}: {exc}") from exc

        return VulnerabilityClassification(**row) if row is not None else None

    def get_all_classifications(self) -> list[VulnerabilityClassification]:
        """Return every stored classification ordered by vulnerability id."""
        try:
            with self.get_session() as session:
                rows = session.execute(
                    text(
                        f"SELECT {', '.join(self._columns)} FROM {self.collection} "
                        "ORDER BY vulnerability_id"
                    )
                ).mappings().all()
        except SQLAlchemyError as exc:
            raise ReadError(f"getting classifications: {exc}") from exc

        return [VulnerabilityClassification(**row) for row in rows]

    def close(self) -> None:
        self.engine.dispose()


def _create_engine(database_url: str) -> Engine:
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every session sees an empty database
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, pool_pre_ping=True)


def create_store(config: StoreConfig) -> CheckpointStore:
    """Create the checkpoint store named by ``config.backend``."""
    if config.backend == "memory":
        logger.warning("Using in-memory checkpoint store; progress will not survive a restart")
        return InMemoryCheckpointStore()
    if config.backend == "sql":
        return SQLCheckpointStore(config.database_url, collection=config.collection)
    raise ValueError(f"Unsupported store backend: {config.backend}")
