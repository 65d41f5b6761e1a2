"""Television tags."""

from typing import Any, Dict, Mapping

SELF_EMISSIVE_PANELS = ("OLED", "QD-OLED")


def derive_tags(specs: Mapping[str, Any]) -> Dict[str, bool]:
    refresh = specs.get("refreshRate")
    size = specs.get("screenSize")
    numeric = lambda v: isinstance(v, (int, float)) and not isinstance(v, bool)
    return {
        "isOled": specs.get("panelType") in SELF_EMISSIVE_PANELS,
        "is4kOrBetter": specs.get("resolution") in ("4K", "8K"),
        "isGamingReady": numeric(refresh) and refresh >= 120 and specs.get("hasHdmi21") is True,
        "isLargeScreen": numeric(size) and size >= 65,
    }
