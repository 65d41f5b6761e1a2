"""Shared fixtures: the repo's category registry and record factories."""

import copy

import pytest

from productgate.config.loader import load_registry
from productgate.config.settings import DEFAULT_CONFIG_DIR
from productgate.pipeline.structure import load_envelope_schema

SPEC_URL = "https://acme.example/x1/specs"
SHOP_URL = "https://shop.example/x1"


@pytest.fixture(scope="session")
def registry():
    """Registry loaded from the repo's config/ directory."""
    return load_registry(DEFAULT_CONFIG_DIR)


@pytest.fixture(scope="session")
def envelope_schema():
    return load_envelope_schema(str(DEFAULT_CONFIG_DIR))


def _cite(quote):
    return {"sourceRef": SPEC_URL, "quote": quote, "confidence": "high"}


VACUUM_RECORD = {
    "product": {
        "id": "rv-acme-x1",
        "name": "Acme X1 Robot Vacuum",
        "brand": "Acme",
        "model": "X1",
        "categoryId": "robot-vacuum",
    },
    "price": {"valueBRL": 2499.9, "sourceUrl": SHOP_URL},
    "sources": [{"url": SPEC_URL, "type": "manufacturer"}],
    "specs": {
        "navigationType": "LiDAR",
        "suctionPa": "4000 Pa",
        "heightCm": "92 mm",
        "noiseDb": 58,
        "hasSelfEmpty": "sim",
        "mopType": "rotativo",
        "dockType": "omni",
    },
    "evidence": {
        "navigationType": _cite("LDS laser navigation"),
        "suctionPa": _cite("Suction power: 4000 Pa"),
        "heightCm": _cite("Height: 92 mm"),
        "noiseDb": _cite("Noise level 58 dB"),
        "dockType": _cite("Omni station: empties, washes and dries"),
    },
    "meta": {"author": "editor"},
}

AC_RECORD = {
    "product": {
        "id": "ac-frio-12",
        "name": "Frio Dual Inverter 12000",
        "brand": "Frio",
        "model": "FDI-12",
        "categoryId": "air_conditioner",
    },
    "price": {"valueBRL": 2899.0, "sourceUrl": SHOP_URL},
    "sources": [{"url": SPEC_URL}],
    "energy": {"labelKwhMonth": 25.3},
    "specs": {
        "btus": "12.000 BTUs",
        "hasInverter": "sim",
        "voltage": "220",
        "inverterType": "dual inverter",
        "energyClass": "a",
    },
    "evidence": {
        "btus": _cite("Capacidade: 12.000 BTUs"),
        "energy.labelKwhMonth": _cite("Consumo: 25,3 kWh/mês"),
        "energyClass": _cite("Classe A"),
    },
}


@pytest.fixture
def vacuum_record():
    """Factory for a fully compliant robot-vacuum record (deep copy per call)."""
    def make(**overrides):
        record = copy.deepcopy(VACUUM_RECORD)
        for section, values in overrides.items():
            record[section].update(values)
        return record
    return make


@pytest.fixture
def ac_record():
    """Factory for a compliant air-conditioner record without noiseDb."""
    def make(**overrides):
        record = copy.deepcopy(AC_RECORD)
        for section, values in overrides.items():
            record[section].update(values)
        return record
    return make
