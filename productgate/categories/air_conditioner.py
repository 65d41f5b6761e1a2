"""Air conditioner tags."""

from typing import Any, Dict, Mapping


def _number(value: Any):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def derive_tags(specs: Mapping[str, Any]) -> Dict[str, bool]:
    btus = _number(specs.get("btus"))
    noise = _number(specs.get("noiseDb"))
    return {
        "isInverter": specs.get("hasInverter") is True,
        "isDualInverter": specs.get("inverterType") == "dual-inverter",
        "isQuiet": noise is not None and noise <= 25,
        "isSmart": specs.get("hasWifi") is True,
        "fitsSmallRoom": btus is not None and btus <= 9000,
        "isEnergyClassA": specs.get("energyClass") == "A",
    }
