from __future__ import annotations

import math
import re
from typing import Any, Dict, Mapping, Optional

from services.site_registry.errors import SiteValidationError


SITE_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")

INVALID_SITE_ID = "Invalid site ID"
HTML_REQUIRED = "HTML content is required"
METADATA_NOT_MAPPING = "metadata must be an object"
METADATA_NOT_FINITE = "metadata must not contain NaN or Infinity"


def is_valid_site_id(value: Any) -> bool:
    # fullmatch with an explicit ASCII class; no trimming or case folding
    return isinstance(value, str) and SITE_ID_PATTERN.fullmatch(value) is not None


def ensure_valid_site_id(value: Any) -> str:
    if not is_valid_site_id(value):
        raise SiteValidationError(INVALID_SITE_ID)
    return value


def ensure_html(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise SiteValidationError(HTML_REQUIRED)
    return value


def _ensure_finite(value: Any) -> None:
    if isinstance(value, float):
        if not math.isfinite(value):
            raise SiteValidationError(METADATA_NOT_FINITE)
    elif isinstance(value, Mapping):
        for item in value.values():
            _ensure_finite(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _ensure_finite(item)


def ensure_metadata(value: Any) -> Dict[str, Any]:
    if not isinstance(value, Mapping):
        raise SiteValidationError(METADATA_NOT_MAPPING)
    # strict JSON has no encoding for non-finite floats
    _ensure_finite(value)
    return dict(value)


def normalize_metadata(value: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if value is None:
        return {}
    return ensure_metadata(value)
