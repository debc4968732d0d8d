class SiteRegistryError(Exception):
    pass


class SiteValidationError(SiteRegistryError, ValueError):
    pass


class SiteNotFoundError(SiteRegistryError, KeyError):
    def __init__(self, site_id: str) -> None:
        super().__init__(site_id)
        self.site_id = site_id

    def __str__(self) -> str:
        return f"Site not found: {self.site_id}"


class SiteStorageError(SiteRegistryError, RuntimeError):
    pass
