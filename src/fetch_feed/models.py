"""Data models for the fetch_feed pipeline stage."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class FeedRecord:
    """One row of the modified index: a record id and when it last changed."""
    modified: str
    ecosystem: str
    vuln_id: str

    @property
    def full_path(self) -> str:
        return f"{self.ecosystem}/{self.vuln_id}"


@dataclass(frozen=True)
class RangeEvent:
    introduced: str | None = None
    fixed: str | None = None


@dataclass(frozen=True)
class VersionRange:
    type: str
    events: tuple[RangeEvent, ...] = ()


@dataclass(frozen=True)
class AffectedPackage:
    ecosystem: str
    name: str
    ranges: tuple[VersionRange, ...] = ()


@dataclass(frozen=True)
class Reference:
    type: str
    url: str


@dataclass(frozen=True)
class Severity:
    type: str
    score: str


@dataclass(frozen=True)
class VulnerabilityDetail:
    """Fully fetched vulnerability record."""
    id: str
    modified: str = ""
    published: str = ""
    withdrawn: str = ""
    summary: str = ""
    details: str = ""
    aliases: tuple[str, ...] = ()
    affected: tuple[AffectedPackage, ...] = ()
    references: tuple[Reference, ...] = ()
    severity: tuple[Severity, ...] = ()
    database_specific: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VulnerabilityDetail:
        """Build a record from the OSV JSON shape.

        Raises:
            KeyError: If the record has no ``id``.
        """
        affected = tuple(
            AffectedPackage(
                ecosystem=(item.get("package") or {}).get("ecosystem", ""),
                name=(item.get("package") or {}).get("name", ""),
                ranges=tuple(
                    VersionRange(
                        type=r.get("type", ""),
                        events=tuple(
                            RangeEvent(
                                introduced=event.get("introduced"),
                                fixed=event.get("fixed"),
                            )
                            for event in r.get("events") or []
                        ),
                    )
                    for r in item.get("ranges") or []
                ),
            )
            for item in data.get("affected") or []
        )

        return cls(
            id=data["id"],
            modified=data.get("modified") or "",
            published=data.get("published") or "",
            withdrawn=data.get("withdrawn") or "",
            summary=data.get("summary") or "",
            details=data.get("details") or "",
            aliases=tuple(data.get("aliases") or []),
            affected=affected,
            references=tuple(
                Reference(type=ref.get("type", ""), url=ref.get("url", ""))
                for ref in data.get("references") or []
            ),
            severity=tuple(
                Severity(type=sev.get("type", ""), score=sev.get("score", ""))
                for sev in data.get("severity") or []
            ),
            database_specific=dict(data.get("database_specific") or {}),
        )


@dataclass
class CacheMetadata:
    """Sidecar describing a cached index download."""
    url: str
    cached_at: datetime
    ttl_hours: int
    etag: str | None = None
    last_modified: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "etag": self.etag,
            "last_modified": self.last_modified,
            "cached_at": self.cached_at.isoformat(),
            "ttl_hours": self.ttl_hours,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheMetadata:
        return cls(
            url=data["url"],
            etag=data.get("etag"),
            last_modified=data.get("last_modified"),
            cached_at=datetime.fromisoformat(data["cached_at"]),
            ttl_hours=int(data.get("ttl_hours", 0)),
        )
