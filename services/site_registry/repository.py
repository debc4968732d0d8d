from __future__ import annotations

import copy
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from services.site_registry.models import SiteRecord, SiteSummary
from services.site_registry.validation import ensure_html, ensure_metadata, ensure_valid_site_id


@dataclass(frozen=True)
class StoredSite:
    site_id: str
    html: str
    metadata: Dict[str, Any]
    created_at: datetime
    updated_at: datetime

    def to_record(self) -> SiteRecord:
        return SiteRecord(
            site_id=self.site_id,
            html=self.html,
            metadata=copy.deepcopy(self.metadata),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def to_summary(self) -> SiteSummary:
        return SiteSummary(
            site_id=self.site_id,
            metadata=copy.deepcopy(self.metadata),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class InMemorySiteRepository:
    """Process-local store keyed by site id.

    Entries are immutable snapshots swapped under a lock, so a reader sees
    either the previous or the next version of a site, never a mix.
    """

    def __init__(self) -> None:
        self._sites: Dict[str, StoredSite] = {}
        self._lock = threading.Lock()

    def init_schema(self) -> None:
        return None

    def upsert(
        self,
        *,
        site_id: str,
        html: str,
        metadata: Dict[str, Any],
        now: datetime,
    ) -> SiteRecord:
        ensure_valid_site_id(site_id)
        ensure_html(html)
        metadata = copy.deepcopy(ensure_metadata(metadata))
        with self._lock:
            existing = self._sites.get(site_id)
            if existing is None:
                stored = StoredSite(
                    site_id=site_id,
                    html=html,
                    metadata=metadata,
                    created_at=now,
                    updated_at=now,
                )
            else:
                stored = StoredSite(
                    site_id=site_id,
                    html=html,
                    metadata=metadata,
                    created_at=existing.created_at,
                    updated_at=max(now, existing.created_at),
                )
            self._sites[site_id] = stored
        return stored.to_record()

    def get(self, site_id: str) -> Optional[SiteRecord]:
        stored = self._sites.get(site_id)
        return stored.to_record() if stored else None

    def get_summary(self, site_id: str) -> Optional[SiteSummary]:
        stored = self._sites.get(site_id)
        return stored.to_summary() if stored else None

    def list_summaries(self) -> List[SiteSummary]:
        with self._lock:
            sites = list(self._sites.values())
        return [stored.to_summary() for stored in sites]

    def delete(self, site_id: str) -> bool:
        with self._lock:
            return self._sites.pop(site_id, None) is not None
