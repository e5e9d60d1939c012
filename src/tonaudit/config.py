"""Global configuration — XDG paths, env vars, defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from tonaudit.analyzer.loader import load_catalog
from tonaudit.analyzer.rules import DEFAULT_CATALOG, RuleCatalog


def _default_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "tonaudit"
    return Path.home() / ".config" / "tonaudit"


@dataclass
class TonAuditConfig:
    """Application-wide configuration."""

    config_dir: Path = field(default_factory=_default_config_dir)
    catalog_path: Path | None = None
    cache_size: int = 128
    max_source_bytes: int = 512_000
    web_host: str = "127.0.0.1"
    web_port: int = 8471
    verbose: bool = False

    @classmethod
    def load(cls) -> TonAuditConfig:
        """Load config from environment variables with XDG defaults."""
        config = cls()

        env_catalog = os.environ.get("TONAUDIT_CATALOG")
        if env_catalog:
            config.catalog_path = Path(env_catalog)
        else:
            # Pick up a user catalog from the config dir if one exists
            user_catalog = config.config_dir / "catalog.yaml"
            if user_catalog.is_file():
                config.catalog_path = user_catalog

        env_cache = os.environ.get("TONAUDIT_CACHE_SIZE")
        if env_cache:
            config.cache_size = int(env_cache)

        env_max = os.environ.get("TONAUDIT_MAX_SOURCE_BYTES")
        if env_max:
            config.max_source_bytes = int(env_max)

        env_port = os.environ.get("TONAUDIT_WEB_PORT")
        if env_port:
            config.web_port = int(env_port)

        config.verbose = os.environ.get("TONAUDIT_VERBOSE", "").lower() in ("1", "true", "yes")

        return config

    def catalog(self) -> RuleCatalog:
        """The configured rule catalog, or the built-in one."""
        if self.catalog_path is None:
            return DEFAULT_CATALOG
        return load_catalog(self.catalog_path)
