"""
Runtime settings read from the environment.

Variables:
    ERP_DATABASE_URL   SQLAlchemy URL (default ``sqlite://``, in-memory).
    ERP_LOG_LEVEL      Root log level for ``configure_logging`` (default INFO).
    ERP_SQL_ECHO       "1"/"true"/"yes" turns on SQLAlchemy statement echo.
    ERP_TAX_CATALOG    Optional path to a YAML tax catalog.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

DEFAULT_DATABASE_URL = "sqlite://"
DEFAULT_LOG_LEVEL = "INFO"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = DEFAULT_LOG_LEVEL
    sql_echo: bool = False
    tax_catalog_path: Path | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from ``environ`` (defaults to ``os.environ``)."""
        env = os.environ if environ is None else environ
        catalog = env.get("ERP_TAX_CATALOG")
        return cls(
            database_url=env.get("ERP_DATABASE_URL", DEFAULT_DATABASE_URL),
            log_level=env.get("ERP_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
            sql_echo=env.get("ERP_SQL_ECHO", "").strip().lower() in _TRUE_VALUES,
            tax_catalog_path=Path(catalog) if catalog else None,
        )
