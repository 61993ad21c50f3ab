import json

import pytest

from ancillary_engine import catalog
from ancillary_engine.catalog import CatalogError


@pytest.fixture(autouse=True)
def _fresh_catalog(monkeypatch):
    monkeypatch.delenv("ANCILLARY_CATALOG_PATH", raising=False)
    catalog.reset_catalog_cache()
    yield
    catalog.reset_catalog_cache()


def test_builtin_catalog_codes_are_unique():
    services = catalog.get_catalog()
    codes = [s.code for s in services]
    assert len(codes) == len(set(codes)) == 17
    assert {"BRAINWAVE", "VITALWAVE", "PGX", "STEROID_INJ", "US_AAA_SCREEN_G0389"} <= set(codes)


def test_builtin_repeat_policies():
    assert catalog.get_service("PGX").repeat_policy == "ONCE_ONLY"
    assert catalog.get_service("STEROID_INJ").repeat_policy == "NO_LIMIT"
    brainwave = catalog.get_service("BRAINWAVE")
    assert brainwave.repeat_policy == "COOLDOWN"
    assert brainwave.cooldown_months_medicare == 12
    assert brainwave.cooldown_months_ppo == 6
    assert all(s.qualification_hints for s in catalog.get_catalog())


def test_lookup_misses():
    assert catalog.get_service("NOT_A_SERVICE") is None
    assert catalog.get_service(None) is None
    assert catalog.get_service(42) is None
    assert "BRAINWAVE" in catalog.catalog_codes()


def test_services_are_immutable():
    svc = catalog.get_service("BRAINWAVE")
    with pytest.raises(Exception):
        svc.name = "Changed"


def test_catalog_loaded_from_json(monkeypatch, tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps([
        {
            "ancillary_code": "ALPHA",
            "ancillary_name": "Alpha Screen",
            "category": "Lab",
            "repeat_policy": "COOLDOWN",
            "cooldown_months_medicare": 24,
            "cooldown_months_ppo": 12,
            "qualification_hints": ["Anything alpha"],
        },
        {
            "ancillary_code": "BETA",
            "ancillary_name": "Beta Procedure",
            "category": "Procedure",
            "repeat_policy": "NO_LIMIT",
        },
    ]))
    monkeypatch.setenv("ANCILLARY_CATALOG_PATH", str(path))
    catalog.reset_catalog_cache()

    codes = [s.code for s in catalog.get_catalog()]
    assert codes == ["ALPHA", "BETA"]
    assert catalog.get_service("ALPHA").qualification_hints == ("Anything alpha",)
    assert catalog.get_service("BRAINWAVE") is None


def test_duplicate_codes_rejected(tmp_path):
    path = tmp_path / "catalog.json"
    entry = {"ancillary_code": "DUP", "ancillary_name": "Dup", "category": "Lab", "repeat_policy": "ONCE_ONLY"}
    path.write_text(json.dumps({"services": [entry, entry]}))
    with pytest.raises(CatalogError):
        catalog.load_catalog(str(path))


def test_invalid_policy_rejected(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps([
        {"ancillary_code": "BAD", "ancillary_name": "Bad", "category": "Lab", "repeat_policy": "SOMETIMES"},
    ]))
    with pytest.raises(CatalogError):
        catalog.load_catalog(str(path))


def test_unreadable_file_raises_catalog_error(tmp_path):
    with pytest.raises(CatalogError):
        catalog.load_catalog(str(tmp_path / "missing.json"))

    path = tmp_path / "catalog.json"
    path.write_text("{not json")
    with pytest.raises(CatalogError):
        catalog.load_catalog(str(path))
