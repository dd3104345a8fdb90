"""
Identity resolution: owner identity -> tenant identity.

The membership table associates each legacy owner (a user) with the tenant
(a company) whose tables the owner's records move into. The resolver scans
it once per run into an immutable ScopeMapping, which is then passed to
every stage that needs it.

Unmapped owners fall back to a single-member tenant named after the owner,
unless the mapping is strict.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType

from tenantmigrate.migration.exceptions import UnmappedOwnerError
from tenantmigrate.observability import (
    ATTR_MAPPING_COUNT,
    ATTR_TABLE_NAME,
    Tracer,
    create_tracer,
)
from tenantmigrate.stores.interface import DEFAULT_PAGE_SIZE, TableStore
from tenantmigrate.types import OwnerId, TenantId

logger = logging.getLogger(__name__)


class ScopeMapping:
    """
    Immutable owner -> tenant lookup for one run.

    Attributes:
        strict: Raise UnmappedOwnerError for unmapped owners instead of
            falling back to the owner identity

    Example:
        >>> mapping = ScopeMapping({"u1": "companyA"})
        >>> mapping.resolve("u1")
        'companyA'
        >>> mapping.resolve("u2")
        'u2'
    """

    def __init__(self, entries: Mapping[OwnerId, TenantId], *, strict: bool = False) -> None:
        self._entries: Mapping[OwnerId, TenantId] = MappingProxyType(dict(entries))
        self.strict = strict

    @classmethod
    def empty(cls, *, strict: bool = False) -> ScopeMapping:
        return cls({}, strict=strict)

    @property
    def entries(self) -> Mapping[OwnerId, TenantId]:
        """Read-only view of the loaded associations."""
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, owner_id: object) -> bool:
        return owner_id in self._entries

    def is_mapped(self, owner_id: OwnerId) -> bool:
        """True when the owner has a membership entry."""
        return owner_id in self._entries

    def resolve(self, owner_id: OwnerId) -> TenantId:
        """
        Get the tenant an owner's records belong to.

        Raises:
            UnmappedOwnerError: Only for strict mappings, if the owner has
                no membership entry
        """
        tenant_id = self._entries.get(owner_id)
        if tenant_id is not None:
            return tenant_id
        if self.strict:
            raise UnmappedOwnerError(owner_id)
        return owner_id

    def tenants(self) -> set[TenantId]:
        """Distinct tenants present in the membership table."""
        return set(self._entries.values())


class IdentityResolver:
    """
    Builds a ScopeMapping from the membership table.

    Example:
        >>> resolver = IdentityResolver(store, config.membership_table)
        >>> mapping = await resolver.build_cache()
        >>> mapping.resolve("user_123")
        'company_456'
    """

    def __init__(
        self,
        store: TableStore,
        membership_table: str,
        *,
        owner_field: str = "userId",
        tenant_field: str = "companyId",
        strict: bool = False,
        page_size: int = DEFAULT_PAGE_SIZE,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._store = store
        self._membership_table = membership_table
        self._owner_field = owner_field
        self._tenant_field = tenant_field
        self._strict = strict
        self._page_size = page_size
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    async def build_cache(self) -> ScopeMapping:
        """
        Scan the membership table once into a ScopeMapping.

        A failed scan is logged as a warning and yields an empty mapping,
        so every owner falls back to itself (or is rejected, when strict).
        Memberships missing either identity are ignored. When an owner
        appears more than once, the last membership read wins and each
        conflict is logged.
        """
        with self._tracer.span(
            "tenantmigrate.identity.build_cache",
            {ATTR_TABLE_NAME: self._membership_table},
        ) as span:
            try:
                memberships = await self._store.scan_all(
                    self._membership_table, page_size=self._page_size
                )
            except Exception as e:
                logger.warning(
                    "Could not load memberships from %s, every owner will fall back: %s",
                    self._membership_table,
                    e,
                )
                return ScopeMapping.empty(strict=self._strict)

            entries: dict[OwnerId, TenantId] = {}
            for membership in memberships:
                owner_id = membership.get(self._owner_field)
                tenant_id = membership.get(self._tenant_field)
                if not owner_id or not tenant_id:
                    continue
                if owner_id in entries and entries[owner_id] != tenant_id:
                    logger.warning(
                        "Owner %s belongs to several tenants, keeping %s over %s",
                        owner_id,
                        tenant_id,
                        entries[owner_id],
                    )
                entries[owner_id] = tenant_id

            logger.info("Loaded %d owner -> tenant mappings", len(entries))
            if span:
                span.set_attribute(ATTR_MAPPING_COUNT, len(entries))
            return ScopeMapping(entries, strict=self._strict)


__all__ = ["IdentityResolver", "ScopeMapping"]
