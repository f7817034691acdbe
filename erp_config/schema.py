"""
TaxCatalogConfig schema.

The human-authored tax catalog source artifact.  YAML files are parsed into
this type by the loader and applied either to an ObjectStore or to a
database session.

Key distinction:
  TaxCatalogConfig = source artifact (human-authored, versioned, checksummed)
  TaxCatalog       = runtime snapshot consumed by the engines
"""

from __future__ import annotations

from dataclasses import dataclass

from erp_kernel.domain.dtos import (
    GroupMembershipInfo,
    TaxAccountingInfo,
    TaxCatalog,
    TaxGroupInfo,
    TaxInfo,
    TaxRuleInfo,
)


@dataclass(frozen=True)
class TaxCatalogConfig:
    """A parsed tax catalog file."""

    taxes: tuple[TaxInfo, ...] = ()
    groups: tuple[TaxGroupInfo, ...] = ()
    memberships: tuple[GroupMembershipInfo, ...] = ()
    rules: tuple[TaxRuleInfo, ...] = ()
    accounting_profiles: tuple[TaxAccountingInfo, ...] = ()
    checksum: str = ""
    source: str = "<memory>"

    def to_catalog(self) -> TaxCatalog:
        return TaxCatalog(
            taxes=self.taxes,
            groups=self.groups,
            memberships=self.memberships,
            rules=self.rules,
            accounting=self.accounting_profiles,
        )
