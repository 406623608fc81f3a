"""Download and locally cache the modified index.

The index is stored as two artifacts named after a fingerprint of the source
URL: the raw CSV payload and a JSON metadata sidecar. A cache entry is only
used when both exist, both parse and the entry has not outlived its TTL.
Anything else falls through to a fresh download. Failing to write the cache
is logged and never fails the fetch.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import requests

from common.config import OSVConfig
from common.errors import DecodeError, DownloadError
from common.hashing import generate_cache_key
from fetch_feed.models import CacheMetadata, FeedRecord
from fetch_feed.read_index import parse_index

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
USER_AGENT = "vuln-pipeline/1.0"


def cache_paths(cache_dir: str, source_url: str) -> tuple[Path, Path]:
    """Return (payload_path, metadata_path) for a source URL."""
    cache_key = generate_cache_key(source_url)
    base = Path(cache_dir)
    return base / f"{cache_key}.csv", base / f"{cache_key}.meta.json"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_expired(metadata: CacheMetadata, ttl_hours: int, now: datetime) -> bool:
    """Check whether a cache entry has outlived ``ttl_hours`` (0 = never)."""
    if ttl_hours <= 0:
        return False
    cached_at = metadata.cached_at
    if cached_at.tzinfo is None:
        cached_at = cached_at.replace(tzinfo=timezone.utc)
    return now >= cached_at + timedelta(hours=ttl_hours)


def load_from_cache(
    payload_path: Path,
    metadata_path: Path,
    ttl_hours: int,
    now: datetime | None = None,
) -> list[FeedRecord] | None:
    """Load cached records, or None if the entry is missing, stale or corrupt."""
    if not payload_path.exists() or not metadata_path.exists():
        return None

    try:
        with metadata_path.open() as f:
            metadata = CacheMetadata.from_dict(json.load(f))
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning("Ignoring unreadable cache metadata %s: %s", metadata_path, e)
        return None

    if is_expired(metadata, ttl_hours, now or _utcnow()):
        logger.info("Cached index expired (cached at %s)", metadata.cached_at.isoformat())
        return None

    try:
        with payload_path.open(encoding="utf-8", newline="") as f:
            return parse_index(f)
    except (OSError, DecodeError) as e:
        logger.warning("Ignoring unreadable cached index %s: %s", payload_path, e)
        return None


def save_to_cache(
    tmp_path: Path,
    payload_path: Path,
    metadata_path: Path,
    metadata: CacheMetadata,
) -> None:
    """Move a parsed download into place and write its metadata sidecar.

    Raises:
        OSError: If the rename or the metadata write fails.
    """
    os.replace(tmp_path, payload_path)
    with metadata_path.open("w") as f:
        json.dump(metadata.to_dict(), f, indent=2)


def _make_temp_file(cache_dir: Path) -> tuple[Path, bool]:
    """Create the download target, inside the cache dir when possible."""
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(prefix="index_download_", suffix=".tmp", dir=cache_dir)
        os.close(fd)
        return Path(name), True
    except OSError as e:
        logger.warning("Cache directory %s unusable, downloading without cache: %s", cache_dir, e)
        fd, name = tempfile.mkstemp(prefix="index_download_", suffix=".tmp")
        os.close(fd)
        return Path(name), False


def download_and_cache(
    config: OSVConfig,
    payload_path: Path,
    metadata_path: Path,
    session: requests.Session,
) -> list[FeedRecord]:
    """Stream the index to a temp file, parse it, then promote it into the cache.

    Raises:
        DownloadError: If the request fails or returns a non-200 status.
        DecodeError: If the downloaded payload cannot be parsed.
    """
    tmp_path, cacheable = _make_temp_file(payload_path.parent)

    try:
        try:
            with session.get(
                config.modified_csv_url,
                stream=True,
                timeout=config.request_timeout,
                headers={"User-Agent": USER_AGENT},
            ) as response:
                if response.status_code != 200:
                    raise DownloadError(
                        f"HTTP {response.status_code} downloading {config.modified_csv_url}"
                    )
                headers = response.headers
                with tmp_path.open("wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
        except requests.RequestException as exc:
            raise DownloadError(f"downloading {config.modified_csv_url}: {exc}") from exc

        with tmp_path.open(encoding="utf-8", newline="") as f:
            records = parse_index(f)

        if cacheable:
            metadata = CacheMetadata(
                url=config.modified_csv_url,
                etag=headers.get("ETag"),
                last_modified=headers.get("Last-Modified"),
                cached_at=_utcnow(),
                ttl_hours=config.cache_ttl,
            )
            try:
                save_to_cache(tmp_path, payload_path, metadata_path, metadata)
            except OSError as e:
                logger.warning("Failed to save index to cache: %s", e)

        return records
    finally:
        if tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError as e:
                logger.warning("Failed to remove temp file %s: %s", tmp_path, e)


def fetch_index(
    config: OSVConfig,
    session: requests.Session | None = None,
) -> list[FeedRecord]:
    """Return the parsed modified index, from cache when fresh.

    Raises:
        DownloadError: If a download is needed and fails.
        DecodeError: If a fresh download cannot be parsed.
    """
    payload_path, metadata_path = cache_paths(config.cache_dir, config.modified_csv_url)

    records = load_from_cache(payload_path, metadata_path, config.cache_ttl)
    if records is not None:
        logger.info("Using cached index data (%d records)", len(records))
        return records

    logger.info("Downloading fresh index data from %s", config.modified_csv_url)
    session = session or requests.Session()
    records = download_and_cache(config, payload_path, metadata_path, session)
    logger.info("Downloaded index with %d records", len(records))
    return records
