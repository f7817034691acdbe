"""
erp_config -- settings and tax catalog configuration.

Responsibility:
    Reads runtime settings from the environment and loads human-authored
    tax catalogs (YAML files, CSV sheets) into the kernel's DTOs, an
    ObjectStore, or the database.

Architecture position:
    Configuration -- sits above ``erp_kernel``.  The kernel MUST NEVER
    import from ``erp_config``.

Usage:
    from erp_config import Settings, bootstrap

    engine = bootstrap(Settings.from_env(), actor_id=system_actor)
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.engine import Engine

from erp_config.loader import apply_to_session, catalog_to_store, load_tax_catalog
from erp_config.schema import TaxCatalogConfig
from erp_config.settings import Settings
from erp_kernel.db.engine import create_tables, init_engine_from_url, session_scope
from erp_kernel.logging_config import configure_logging, get_logger

logger = get_logger("config")


def bootstrap(settings: Settings | None = None, actor_id: UUID | None = None) -> Engine:
    """
    Configure logging, initialise the engine and create tables.

    When ``settings.tax_catalog_path`` is set the catalog is loaded and
    applied in its own unit of work; ``actor_id`` is then required.

    Raises:
        ValueError: If a catalog is configured but no actor_id is given.
        ConfigError: If the catalog file is invalid.
    """
    settings = settings or Settings.from_env()
    configure_logging(level=settings.log_level)
    engine = init_engine_from_url(settings.database_url, echo=settings.sql_echo)
    create_tables()

    if settings.tax_catalog_path is not None:
        if actor_id is None:
            raise ValueError("actor_id is required to apply a tax catalog")
        config = load_tax_catalog(settings.tax_catalog_path)
        with session_scope() as session:
            apply_to_session(config, session, actor_id)

    logger.info(
        "bootstrap_completed",
        extra={
            "dialect": engine.dialect.name,
            "tax_catalog": str(settings.tax_catalog_path or ""),
        },
    )
    return engine


__all__ = [
    "Settings",
    "TaxCatalogConfig",
    "apply_to_session",
    "bootstrap",
    "catalog_to_store",
    "load_tax_catalog",
]
