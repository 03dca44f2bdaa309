"""Engine tunables, overridable through ``settings.ENROLLMENT_ENGINE``."""

from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    "MAX_ACTIVITIES_PER_REQUEST": 10,
    "SEAT_NUMBER_PADDING": 3,
    "CAPACITY_STATUS_CACHE_TIMEOUT": 30,
    "CATALOG_CACHE_TIMEOUT": 60,
}


def engine_setting(name: str) -> Any:
    overrides = getattr(settings, "ENROLLMENT_ENGINE", {})
    return overrides.get(name, DEFAULTS[name])
