"""
Robot vacuum tags and legacy spec inference.

``infer_specs`` is the heuristic path for legacy records that predate
structured specs. Its output is never treated as verified: the legacy
module marks every record it produces with ``isFallback``.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

# Conservative values used for keys the heuristics cannot recover.
FALLBACK_SPECS: Dict[str, Any] = {
    "navigationType": "gyroscope",
    "mopType": "static",
    "brushType": "bristle",
    "dockType": "basic",
    "obstacleDetection": "bump-only",
    "heightCm": 9.5,
}

NAVIGATION_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("lidar", ("lidar", "laser")),
    ("vslam", ("vslam", "câmera", "camera")),
    ("gyroscope", ("giroscóp", "giroscop", "gyro")),
    ("random", ("aleatória", "aleator", "random")),
]

MOP_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("rotating", ("rotat", "rotativ", "girat")),
    ("vibrating", ("vibra", "sonic")),
    ("static", ("mop", "pano")),
]

DOCK_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("all-in-one", ("all-in-one", "all in one", "omni")),
    ("auto-wash", ("auto-wash", "lavagem")),
    ("auto-empty", ("auto-empty", "autoesvazia", "self-empty", "esvaziamento")),
]


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def derive_tags(specs: Mapping[str, Any]) -> Dict[str, bool]:
    height = _number(specs.get("heightCm"))
    noise = _number(specs.get("noiseDb"))
    suction = _number(specs.get("suctionPa"))
    return {
        "hasLidar": specs.get("navigationType") == "lidar",
        "fitsUnderFurniture": height is not None and height <= 9.0,
        "isQuiet": noise is not None and noise <= 60,
        "hasSelfEmpty": specs.get("hasSelfEmpty") is True or specs.get("dockType") in ("auto-empty", "all-in-one"),
        "hasMop": specs.get("mopType") not in (None, "none"),
        "isPetFriendly": specs.get("brushType") in ("anti-tangle", "rubber") and suction is not None and suction >= 3000,
    }


def _text(*candidates: Any) -> str:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip().lower()
    return ""


def _positive_number(*candidates: Any) -> Optional[float]:
    for candidate in candidates:
        if isinstance(candidate, bool):
            continue
        if isinstance(candidate, (int, float)) and candidate > 0:
            return float(candidate)
        if isinstance(candidate, str):
            try:
                parsed = float(candidate.replace(",", ".").split()[0])
            except (ValueError, IndexError):
                continue
            if parsed > 0:
                return parsed
    return None


def _match(text: str, table: List[Tuple[str, Tuple[str, ...]]]) -> Optional[str]:
    for canonical, keywords in table:
        if any(k in text for k in keywords):
            return canonical
    return None


def infer_specs(legacy: Mapping[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    """
    Best-effort spec extraction from an unstructured legacy product.

    Args:
        legacy: Legacy product dict (specs / attributes / technicalSpecs /
            productDimensions / description / name)

    Returns:
        (partially inferred specs, legacy field names used as sources)
    """
    specs = legacy.get("specs") or {}
    attributes = legacy.get("attributes") or {}
    technical = legacy.get("technicalSpecs") or {}
    dimensions = legacy.get("productDimensions") or {}
    inferred: Dict[str, Any] = {}
    sources_used: List[str] = []

    nav_text = _text(attributes.get("navigationType"), technical.get("navigation"),
                     technical.get("navigationType"), specs.get("navigationType"))
    navigation = _match(nav_text, NAVIGATION_KEYWORDS)
    if navigation is None and technical.get("lidar") is True:
        navigation = "lidar"
    if navigation:
        inferred["navigationType"] = navigation
        sources_used.append("navigation")

    mop_text = _text(attributes.get("mopType"), technical.get("mopType"), specs.get("mopType"))
    mop = _match(mop_text, MOP_KEYWORDS)
    if mop:
        inferred["mopType"] = mop
        sources_used.append("mopType")

    dock_text = _text(attributes.get("dockType"), technical.get("dockType"), specs.get("dockType"),
                      legacy.get("description"))
    dock = _match(dock_text, DOCK_KEYWORDS)
    if dock:
        inferred["dockType"] = dock
        sources_used.append("dockType")

    height = _positive_number(dimensions.get("height"), technical.get("height"), specs.get("heightCm"))
    if height is not None:
        inferred["heightCm"] = height
        sources_used.append("height")

    suction = _positive_number(technical.get("suctionPower"), specs.get("suctionPa"), attributes.get("suctionPa"))
    if suction is not None:
        inferred["suctionPa"] = suction
        sources_used.append("suction")

    return inferred, sources_used
