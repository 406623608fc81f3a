"""Configuration loader for the vulnerability pipeline."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_MODIFIED_CSV_URL = "https://osv-vulnerabilities.storage.googleapis.com/modified_id.csv"
DEFAULT_API_URL = "https://api.osv.dev/v1"
DEFAULT_DATABASE_URL = "sqlite:///vulnerabilities.db"


@dataclass
class OSVConfig:
    modified_csv_url: str = DEFAULT_MODIFIED_CSV_URL
    api_url: str = DEFAULT_API_URL
    ecosystem: str = ""  # Optional group filter, empty means all
    cache_dir: str = ".cache/osv"
    cache_ttl: int = 24  # Hours, 0 = never expires
    request_timeout: int = 30


@dataclass
class LLMConfig:
    model: str = "gpt-4o-mini"
    api_key: str | None = None
    base_url: str | None = None
    strategy: str = "schema"  # "schema" or "extract"
    max_tokens: int = 4096


@dataclass
class StoreConfig:
    backend: str = "sql"  # "sql" or "memory"
    database_url: str = DEFAULT_DATABASE_URL
    collection: str = "vulnerability_classifications"


@dataclass
class ProcessingConfig:
    batch_size: int = 100


@dataclass
class Config:
    osv: OSVConfig = field(default_factory=OSVConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)


def load_yaml(path: Path) -> dict:
    """Load YAML file and return dict (empty for an empty file)."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_config(config_path: str | Path) -> Config:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML config file.

    Returns:
        Loaded Config object with defaults applied

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the file is not a YAML mapping or has invalid values
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    data = load_yaml(path)
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")

    return _parse_config(data)


def _int_value(section: dict, key: str, default: int, name: str) -> int:
    """Read an integer setting; null or absent means the default."""
    value = section.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name}.{key} must be an integer, got {value!r}") from exc


def _parse_config(data: dict) -> Config:
    """Parse config dictionary into Config object."""
    osv_data = data.get("osv") or {}
    llm_data = data.get("llm") or {}
    store_data = data.get("store") or {}
    processing_data = data.get("processing") or {}

    osv = OSVConfig(
        modified_csv_url=osv_data.get("modified_csv_url") or DEFAULT_MODIFIED_CSV_URL,
        api_url=(osv_data.get("api_url") or DEFAULT_API_URL).rstrip("/"),
        ecosystem=osv_data.get("ecosystem") or "",
        cache_dir=osv_data.get("cache_dir") or ".cache/osv",
        cache_ttl=_int_value(osv_data, "cache_ttl", 24, "osv"),
        request_timeout=_int_value(osv_data, "request_timeout", 30, "osv"),
    )

    llm = LLMConfig(
        model=llm_data.get("model") or "gpt-4o-mini",
        api_key=llm_data.get("api_key") or os.environ.get("OPENAI_API_KEY"),
        base_url=llm_data.get("base_url") or None,
        strategy=llm_data.get("strategy") or "schema",
        max_tokens=_int_value(llm_data, "max_tokens", 4096, "llm"),
    )

    store = StoreConfig(
        backend=store_data.get("backend") or "sql",
        database_url=(
            store_data.get("database_url")
            or os.environ.get("DATABASE_URL")
            or DEFAULT_DATABASE_URL
        ),
        collection=store_data.get("collection") or "vulnerability_classifications",
    )

    processing = ProcessingConfig(
        batch_size=_int_value(processing_data, "batch_size", 100, "processing"),
    )

    if osv.cache_ttl < 0:
        raise ValueError("osv.cache_ttl must be >= 0")
    if llm.strategy not in ("schema", "extract"):
        raise ValueError(f"Unsupported llm.strategy: {llm.strategy}")
    if store.backend not in ("sql", "memory"):
        raise ValueError(f"Unsupported store.backend: {store.backend}")
    if processing.batch_size <= 0:
        raise ValueError("processing.batch_size must be > 0")

    return Config(osv=osv, llm=llm, store=store, processing=processing)
