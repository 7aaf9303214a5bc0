import logging

import httpx
from pydantic import ValidationError

from app.cache.redis import cache_get, cache_set
from app.config import settings
from app.models.network import SystemType
from app.models.profile import DEFAULT_PROFILES, KernelConfig, SystemProfile

logger = logging.getLogger(__name__)

_client: httpx.AsyncClient | None = None


def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(timeout=httpx.Timeout(5.0, connect=2.0))
    return _client


def _merge_remote(base: SystemProfile, payload: dict) -> SystemProfile:
    """Overlay the rules service's ``{doubleLine, spacingMeters, minAngleDeg}`` on a local profile.

    Standoff, label and the branch/pad flags are not published remotely and
    stay as configured here.
    """
    if payload.get("system", base.system.value) != base.system.value:
        raise ValueError(f"Rules service answered for '{payload.get('system')}', expected '{base.system.value}'")

    double_line = bool(payload.get("doubleLine", base.dual_line))
    spacing = float(payload.get("spacingMeters", base.spacing_m))
    return SystemProfile.model_validate({
        **base.model_dump(),
        "dual_line": double_line,
        "spacing_m": spacing if double_line else 0.0,
        "min_turn_angle_deg": int(payload.get("minAngleDeg", base.min_turn_angle_deg)),
    })


async def _fetch_rules(system: SystemType) -> dict | None:
    client = _get_client()
    url = f"{settings.rules_service_base.rstrip('/')}/rules/{system.value}"
    try:
        resp = await client.get(url)
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Rules service lookup for %s failed: %s", system.value, exc)
        return None

    if not isinstance(data, dict):
        logger.warning("Rules service returned %s for %s, expected an object", type(data).__name__, system.value)
        return None
    return data


async def get_system_profile(system: SystemType) -> SystemProfile:
    """Profile for ``system``: remote rules when reachable, built-in defaults otherwise."""
    base = DEFAULT_PROFILES[system]
    if not settings.rules_service_base:
        return base

    cache_key = f"profile:{system.value}"
    cached = await cache_get(cache_key)
    if cached is not None:
        try:
            return SystemProfile.model_validate(cached)
        except ValidationError:
            logger.debug("Ignoring stale cached profile for %s", system.value)

    payload = await _fetch_rules(system)
    if payload is None:
        return base

    try:
        profile = _merge_remote(base, payload)
    except (TypeError, ValueError) as exc:
        logger.warning("Rules service returned an unusable profile for %s: %s", system.value, exc)
        return base

    await cache_set(cache_key, profile.model_dump(mode="json"), ttl=settings.cache_ttl_profile)
    return profile


async def get_profiles() -> dict[SystemType, SystemProfile]:
    return {system: await get_system_profile(system) for system in SystemType}


async def get_kernel_config() -> KernelConfig:
    return KernelConfig(
        profiles=await get_profiles(),
        snap_radius_m=settings.snap_radius_m,
        avoidance_margin_m=settings.avoidance_margin_m,
        perimeter_tolerance_m=settings.perimeter_tolerance_m,
    )
