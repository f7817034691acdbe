"""
Tax Catalog Loader (``erp_config.loader``).

Responsibility
--------------
Loads YAML tax catalog files and parses them into a frozen
``TaxCatalogConfig`` of kernel DTOs, then applies a parsed catalog to
either backing: an in-memory ``ObjectStore`` or a database session (via
``TaxCatalogService``).

File layout
-----------
Top-level keys, each a list of mappings::

    taxes:                # code, name, kind, application_level, amount,
                          # percentage, is_enabled, is_included_in_price
    groups:               # code, name, description, is_enabled
    memberships:          # group_code, entity_code, group_type
    rules:                # tax_code, document_operation,
                          # business_entity_group, item_group, priority,
                          # is_enabled
    accounting_profiles:  # document_operation, tax_code,
                          # debit_account_code, credit_account_code,
                          # include_in_transaction

Invariants enforced
-------------------
* Every parsed object is a frozen DTO from ``erp_kernel.domain.dtos``
  and passes the matching validator from ``erp_kernel.domain.validation``.
* Rules, memberships and accounting profiles may only reference taxes and
  groups declared in the same file.
* ``compute_checksum`` produces a deterministic SHA-256 hash for change
  detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML, unknown enum values, missing required keys, failed field
  validation or dangling references  -> ``ConfigError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml
from sqlalchemy.orm import Session

from erp_config.schema import TaxCatalogConfig
from erp_kernel.domain.dtos import (
    GroupMembershipInfo,
    GroupType,
    TaxAccountingInfo,
    TaxApplicationLevel,
    TaxGroupInfo,
    TaxInfo,
    TaxKind,
    TaxRuleInfo,
    ValidationResult,
)
from erp_kernel.domain.validation import (
    validate_group_membership,
    validate_tax,
    validate_tax_rule,
)
from erp_kernel.exceptions import ConfigError
from erp_kernel.logging_config import get_logger
from erp_kernel.services.tax_service import TaxCatalogService
from erp_kernel.store import ObjectStore

logger = get_logger("config.loader")

SECTIONS = ("taxes", "groups", "memberships", "rules", "accounting_profiles")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        ConfigError: if the file is not valid YAML or not a mapping.
    """
    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(str(path), f"invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(str(path), "top level must be a mapping")
    return data


# ---------------------------------------------------------------------------
# Scalar parsing
# ---------------------------------------------------------------------------


def parse_decimal(value: Any, field: str = "value") -> Decimal:
    """Decimal from a YAML/CSV scalar.  Floats go through str() first."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, bool):
        raise ValueError(f"{field}: expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{field}: expected a number, got {value!r}") from exc


def parse_bool(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "y", "on"):
        return True
    if text in ("0", "false", "no", "n", "off"):
        return False
    raise ValueError(f"expected a boolean, got {value!r}")


def optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# ---------------------------------------------------------------------------
# Record parsing
# ---------------------------------------------------------------------------


def parse_tax(data: dict[str, Any]) -> TaxInfo:
    """
    Parse a TaxInfo from a dict.

    Raises:
        KeyError: if ``code`` or ``name`` is missing.
        ValueError: on an unknown kind/level or a non-numeric amount.
    """
    return TaxInfo(
        code=str(data["code"]).strip(),
        name=str(data["name"]).strip(),
        kind=TaxKind(data.get("kind") or TaxKind.PERCENTAGE.value),
        application_level=TaxApplicationLevel(
            data.get("application_level") or TaxApplicationLevel.LINE.value
        ),
        amount=parse_decimal(data.get("amount"), "amount"),
        percentage=parse_decimal(data.get("percentage"), "percentage"),
        is_enabled=parse_bool(data.get("is_enabled"), True),
        is_included_in_price=parse_bool(data.get("is_included_in_price"), False),
    )


def parse_group(data: dict[str, Any]) -> TaxGroupInfo:
    return TaxGroupInfo(
        code=str(data["code"]).strip(),
        name=str(data.get("name") or data["code"]).strip(),
        description=str(data.get("description") or ""),
        is_enabled=parse_bool(data.get("is_enabled"), True),
    )


def parse_membership(data: dict[str, Any]) -> GroupMembershipInfo:
    return GroupMembershipInfo(
        group_code=str(data["group_code"]).strip(),
        entity_code=str(data["entity_code"]).strip(),
        group_type=GroupType(data["group_type"]),
    )


def parse_rule(data: dict[str, Any]) -> TaxRuleInfo:
    """Filters that are absent, null or blank match anything."""
    priority = data.get("priority")
    return TaxRuleInfo(
        tax_code=str(data["tax_code"]).strip(),
        document_operation=optional_str(data.get("document_operation")),
        business_entity_group=optional_str(data.get("business_entity_group")),
        item_group=optional_str(data.get("item_group")),
        priority=int(priority) if priority not in (None, "") else 1,
        is_enabled=parse_bool(data.get("is_enabled"), True),
    )


def parse_accounting_profile(data: dict[str, Any]) -> TaxAccountingInfo:
    return TaxAccountingInfo(
        document_operation=str(data["document_operation"]).strip(),
        tax_code=str(data["tax_code"]).strip(),
        debit_account_code=optional_str(data.get("debit_account_code")),
        credit_account_code=optional_str(data.get("credit_account_code")),
        include_in_transaction=parse_bool(data.get("include_in_transaction"), True),
    )


def _parse_section(source: str, data: dict[str, Any], section: str, parser) -> list:
    raw = data.get(section) or []
    if not isinstance(raw, list):
        raise ConfigError(source, f"'{section}' must be a list")
    parsed = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ConfigError(source, f"{section}[{index}] must be a mapping")
        try:
            parsed.append(parser(entry))
        except KeyError as exc:
            raise ConfigError(source, f"{section}[{index}] missing key {exc}") from exc
        except (TypeError, ValueError) as exc:
            raise ConfigError(source, f"{section}[{index}]: {exc}") from exc
    return parsed


def _require_valid(source: str, label: str, result: ValidationResult) -> None:
    if not result:
        raise ConfigError(source, f"{label} failed validation: {', '.join(result.error_codes)}")


def _check_references(source: str, config: TaxCatalogConfig) -> None:
    tax_codes = {t.code for t in config.taxes}
    group_codes = {g.code for g in config.groups}

    for tax in config.taxes:
        _require_valid(source, f"tax {tax.code}", validate_tax(tax))
    if len(tax_codes) != len(config.taxes):
        raise ConfigError(source, "duplicate tax code")
    if len(group_codes) != len(config.groups):
        raise ConfigError(source, "duplicate group code")

    for m in config.memberships:
        _require_valid(source, f"membership {m.group_code}/{m.entity_code}",
                       validate_group_membership(m))
        if m.group_code not in group_codes:
            raise ConfigError(source, f"membership references unknown group {m.group_code}")

    for index, rule in enumerate(config.rules):
        _require_valid(source, f"rules[{index}]", validate_tax_rule(rule))
        if rule.tax_code not in tax_codes:
            raise ConfigError(source, f"rules[{index}] references unknown tax {rule.tax_code}")
        for group in (rule.business_entity_group, rule.item_group):
            if group is not None and group not in group_codes:
                raise ConfigError(source, f"rules[{index}] references unknown group {group}")

    for profile in config.accounting_profiles:
        if profile.tax_code not in tax_codes:
            raise ConfigError(
                source, f"accounting profile references unknown tax {profile.tax_code}"
            )


def parse_tax_catalog(data: dict[str, Any], source: str = "<memory>") -> TaxCatalogConfig:
    """
    Parse and check a whole catalog mapping.

    Raises:
        ConfigError: on any structural, field or reference problem.
    """
    unknown = sorted(set(data) - set(SECTIONS))
    if unknown:
        raise ConfigError(source, f"unknown sections: {', '.join(unknown)}")

    config = TaxCatalogConfig(
        taxes=tuple(_parse_section(source, data, "taxes", parse_tax)),
        groups=tuple(_parse_section(source, data, "groups", parse_group)),
        memberships=tuple(_parse_section(source, data, "memberships", parse_membership)),
        rules=tuple(_parse_section(source, data, "rules", parse_rule)),
        accounting_profiles=tuple(
            _parse_section(source, data, "accounting_profiles", parse_accounting_profile)
        ),
        checksum=compute_checksum(data),
        source=source,
    )
    _check_references(source, config)
    return config


def load_tax_catalog(path: Path | str) -> TaxCatalogConfig:
    """Load and parse a YAML tax catalog file."""
    path = Path(path)
    config = parse_tax_catalog(load_yaml_file(path), source=str(path))
    logger.info(
        "tax_catalog_config_loaded",
        extra={
            "source": str(path),
            "checksum": config.checksum,
            "tax_count": len(config.taxes),
            "rule_count": len(config.rules),
        },
    )
    return config


def compute_checksum(data: dict[str, Any]) -> str:
    """
    SHA-256 of the canonical JSON serialization of ``data``.

    Identical data always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


# ---------------------------------------------------------------------------
# Applying a catalog
# ---------------------------------------------------------------------------


def catalog_to_store(
    config: TaxCatalogConfig, store: ObjectStore | None = None
) -> ObjectStore:
    """Append every record of ``config`` to ``store`` (a new one by default)."""
    store = store if store is not None else ObjectStore()
    store.add_all(config.taxes)
    store.add_all(config.groups)
    store.add_all(config.memberships)
    store.add_all(config.rules)
    store.add_all(config.accounting_profiles)
    return store


def _rule_key(rule: TaxRuleInfo) -> tuple:
    return (
        rule.tax_code,
        rule.document_operation,
        rule.business_entity_group,
        rule.item_group,
        rule.priority,
        rule.is_enabled,
    )


def apply_to_session(
    config: TaxCatalogConfig, session: Session, actor_id: UUID
) -> dict[str, int]:
    """
    Write ``config`` into the database.

    Taxes are created or updated by code.  Groups, memberships and rules
    already present are left alone; new ones are appended, so applying the
    same file twice changes nothing.  Accounting profiles are upserted.

    Returns:
        Count of records written per section.
    """
    service = TaxCatalogService(session)
    written = dict.fromkeys(SECTIONS, 0)

    for tax in config.taxes:
        if service.find_tax(tax.code) is None:
            service.create_tax(tax, actor_id)
        else:
            service.update_tax(tax, actor_id)
        written["taxes"] += 1

    existing_groups = {g.code for g in service.list_groups()}
    for group in config.groups:
        if group.code not in existing_groups:
            service.create_group(group, actor_id)
            written["groups"] += 1

    existing_members = {
        (m.group_code, m.entity_code, m.group_type) for m in service.list_memberships()
    }
    for m in config.memberships:
        if (m.group_code, m.entity_code, m.group_type) not in existing_members:
            service.add_member(m.group_code, m.entity_code, m.group_type, actor_id)
            existing_members.add((m.group_code, m.entity_code, m.group_type))
            written["memberships"] += 1

    existing_rules = {_rule_key(r) for r in service.list_rules()}
    for rule in config.rules:
        if _rule_key(rule) not in existing_rules:
            service.create_rule(rule, actor_id)
            existing_rules.add(_rule_key(rule))
            written["rules"] += 1

    for profile in config.accounting_profiles:
        service.set_accounting_profile(profile, actor_id)
        written["accounting_profiles"] += 1

    logger.info(
        "tax_catalog_applied",
        extra={"source": config.source, "checksum": config.checksum, **written},
    )
    return written
