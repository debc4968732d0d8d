from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from services.common.clock import Clock
from services.site_registry.repository import InMemorySiteRepository
from services.site_registry.service import SiteRegistryService, SiteRepository
from services.site_registry.sql_repository import SqlSiteRepository


@dataclass(frozen=True)
class SiteRegistryConfig:
    database_url: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    log_format: str = "console"
    cors_allow_origins: Tuple[str, ...] = ("*",)


def _split_csv(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def load_site_registry_config(env_file: Optional[str] = None) -> SiteRegistryConfig:
    # values already in the process environment win over the .env file
    load_dotenv(env_file)
    origins = _split_csv(os.getenv("CORS_ALLOW_ORIGINS"))
    return SiteRegistryConfig(
        database_url=os.getenv("DATABASE_URL") or None,
        host=os.getenv("HOST", SiteRegistryConfig.host),
        port=int(os.getenv("PORT", str(SiteRegistryConfig.port))),
        log_level=os.getenv("LOG_LEVEL", SiteRegistryConfig.log_level),
        log_format=os.getenv("LOG_FORMAT", SiteRegistryConfig.log_format).lower(),
        cors_allow_origins=tuple(origins) if origins else SiteRegistryConfig.cors_allow_origins,
    )


def build_site_repository(config: SiteRegistryConfig) -> SiteRepository:
    if config.database_url:
        return SqlSiteRepository.from_url(config.database_url)
    return InMemorySiteRepository()


def build_site_registry_service(
    *,
    config: Optional[SiteRegistryConfig] = None,
    repository: Optional[SiteRepository] = None,
    clock: Optional[Clock] = None,
) -> SiteRegistryService:
    cfg = config or load_site_registry_config()
    repo = repository or build_site_repository(cfg)
    return SiteRegistryService(repo, clock=clock)
