import sys
from typing import Optional

import uvicorn

from services.common.logging import configure_logging, get_logger
from services.site_registry.app import create_app
from services.site_registry.config import (
    SiteRegistryConfig,
    build_site_registry_service,
    load_site_registry_config,
)
from services.site_registry.errors import SiteStorageError

logger = get_logger(__name__)


def run(config: Optional[SiteRegistryConfig] = None) -> None:
    cfg = config or load_site_registry_config()
    configure_logging(cfg.log_level, cfg.log_format)

    registry = build_site_registry_service(config=cfg)
    try:
        registry.repository.init_schema()
    except SiteStorageError:
        logger.exception("startup_failed", backend=type(registry.repository).__name__)
        sys.exit(1)
    logger.info("storage_ready", backend=type(registry.repository).__name__)

    logger.info("server_starting", host=cfg.host, port=cfg.port)
    app = create_app(registry=registry, config=cfg, init_schema=False)
    uvicorn.run(app, host=cfg.host, port=cfg.port, log_config=None)


if __name__ == "__main__":
    run()
