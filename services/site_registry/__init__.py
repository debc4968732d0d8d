from services.site_registry.errors import (
    SiteNotFoundError,
    SiteRegistryError,
    SiteStorageError,
    SiteValidationError,
)
from services.site_registry.models import SiteRecord, SiteSummary
from services.site_registry.repository import InMemorySiteRepository
from services.site_registry.service import SiteRegistryService
from services.site_registry.sql_repository import SqlSiteRepository
from services.site_registry.validation import is_valid_site_id

__all__ = [
    "InMemorySiteRepository",
    "SiteNotFoundError",
    "SiteRecord",
    "SiteRegistryError",
    "SiteRegistryService",
    "SiteStorageError",
    "SiteSummary",
    "SiteValidationError",
    "SqlSiteRepository",
    "is_valid_site_id",
]
