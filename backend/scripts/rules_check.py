"""Drift check between the rules service and the built-in system profiles.

Run: python -m scripts.rules_check
Schedule: after any change to the rules service configuration

Checks, per system type:
1. The rules service answers GET /rules/{system}
2. Its dual-line flag, spacing and minimum turn angle match the built-in profile
3. The minimum turn angle is 90 degrees (the synthesizer only emits right angles)
"""

import asyncio
import sys

from app.config import settings
from app.models.network import SystemType
from app.models.profile import DEFAULT_PROFILES
from app.services.rules_client import _fetch_rules, _merge_remote


async def check_system(system: SystemType) -> dict:
    result: dict = {"system": system.value, "status": "OK", "issues": []}
    base = DEFAULT_PROFILES[system]
    try:
        payload = await _fetch_rules(system)
        if payload is None:
            result["status"] = "FAIL"
            result["issues"].append("No answer from rules service")
            return result

        remote = _merge_remote(base, payload)
        result["dual_line"] = remote.dual_line
        result["spacing_m"] = remote.spacing_m

        for field in ("dual_line", "spacing_m", "min_turn_angle_deg"):
            local_value, remote_value = getattr(base, field), getattr(remote, field)
            if local_value != remote_value:
                result["status"] = "WARN"
                result["issues"].append(f"{field}: built-in {local_value}, remote {remote_value}")

        if remote.min_turn_angle_deg != 90:
            result["status"] = "FAIL"
            result["issues"].append(
                f"Minimum turn angle {remote.min_turn_angle_deg} is not supported (only 90)"
            )
    except Exception as exc:
        result["status"] = "FAIL"
        result["issues"].append(str(exc))
    return result


async def main():
    print("=" * 60)
    print("Routing Profiles -- Rules Service Drift Check")
    print("=" * 60)
    if not settings.rules_service_base:
        print("ROUTEKIT_RULES_SERVICE_BASE is not set; nothing to compare")
        sys.exit(0)
    print(f"Rules service: {settings.rules_service_base}")
    print()

    checks = await asyncio.gather(*(check_system(system) for system in SystemType))

    has_failures = False
    for check in checks:
        status = check["status"]
        icon = "+" if status == "OK" else "?" if status == "WARN" else "X"
        print(f"  {icon} {check['system']}: {status}")
        for key, value in check.items():
            if key not in ("system", "status", "issues"):
                print(f"    {key}: {value}")
        for issue in check.get("issues", []):
            print(f"    ! {issue}")
        print()
        if status == "FAIL":
            has_failures = True

    if has_failures:
        print("RESULT: FAIL -- rules service unreachable or incompatible")
        sys.exit(1)
    else:
        print("RESULT: OK -- profiles consistent")
        sys.exit(0)


if __name__ == "__main__":
    asyncio.run(main())
