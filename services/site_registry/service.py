from __future__ import annotations

from typing import Any, List, Mapping, Optional, Union

from services.common.clock import Clock
from services.site_registry.errors import SiteNotFoundError
from services.site_registry.models import SiteRecord, SiteSummary
from services.site_registry.repository import InMemorySiteRepository
from services.site_registry.sql_repository import SqlSiteRepository
from services.site_registry.validation import ensure_html, ensure_valid_site_id, normalize_metadata


SiteRepository = Union[InMemorySiteRepository, SqlSiteRepository]


class SiteRegistryService:
    """Validates site input and delegates storage to a repository.

    Raises SiteValidationError for bad input, SiteNotFoundError for missing
    sites; repository failures surface as SiteStorageError without retry.
    """

    def __init__(self, repository: SiteRepository, clock: Optional[Clock] = None) -> None:
        self._repository = repository
        self._clock = clock or Clock()

    @property
    def repository(self) -> SiteRepository:
        return self._repository

    def upsert(
        self,
        site_id: str,
        html: Any,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> SiteRecord:
        ensure_valid_site_id(site_id)
        ensure_html(html)
        return self._repository.upsert(
            site_id=site_id,
            html=html,
            metadata=normalize_metadata(metadata),
            now=self._clock.now(),
        )

    def get(self, site_id: str) -> SiteRecord:
        ensure_valid_site_id(site_id)
        record = self._repository.get(site_id)
        if record is None:
            raise SiteNotFoundError(site_id)
        return record

    def get_info(self, site_id: str) -> SiteSummary:
        ensure_valid_site_id(site_id)
        summary = self._repository.get_summary(site_id)
        if summary is None:
            raise SiteNotFoundError(site_id)
        return summary

    def list_sites(self) -> List[SiteSummary]:
        return self._repository.list_summaries()

    def delete(self, site_id: str) -> None:
        ensure_valid_site_id(site_id)
        if not self._repository.delete(site_id):
            raise SiteNotFoundError(site_id)
