"""
Tests for the mall tariff import script
"""
import json
import pytest

from exceptions import CatalogConfigurationError
from scripts.import_mall_rates import main, normalize_candidate, upsert_entry, validate_entry


@pytest.fixture
def candidate():
    return {
        "key": "west_mall",
        "display_name": "West Mall",
        "aliases": ["WestMall", "West Mall Bukit Batok"],
        "geofence": {"lat": 1.3501, "lng": 103.7493},
        "tariff": {
            "weekday": {"first_hour": 1.0, "per_half_hour": 0.5, "rate_label": "$1 first hr"},
            "weekend_or_ph": {"first_hour": 1.2, "per_half_hour": 0.6, "rate_label": "$1.20 first hr"},
            "night": {"first_hour": 0.8, "per_half_hour": 0.4, "rate_label": "$0.80 first hr"},
            "cap_label": "West Mall published rates",
        },
    }


class TestNormalize:

    def test_aliases_merged_and_deduplicated(self, candidate):
        entry = normalize_candidate(candidate)
        assert entry["aliases"] == ["westmall", "westmallbukitbatok"]

    def test_defaults(self, candidate):
        entry = normalize_candidate(candidate, "https://example.com/rates")

        assert entry["tariff"]["day_start_mins"] == 420
        assert entry["tariff"]["day_end_mins"] == 1320
        assert entry["geofence"]["radius_m"] == 800
        assert entry["tariff"]["source_url"] == "https://example.com/rates"
        assert entry["tariff"]["last_verified_at"]

    def test_bad_geofence_dropped(self, candidate):
        candidate["geofence"] = {"lat": "north"}
        assert "geofence" not in normalize_candidate(candidate)


class TestValidate:

    def test_valid(self, candidate):
        validate_entry(normalize_candidate(candidate))

    def test_missing_band(self, candidate):
        del candidate["tariff"]["night"]
        with pytest.raises(CatalogConfigurationError):
            validate_entry(normalize_candidate(candidate))

    def test_key_clash_with_builtin(self, candidate):
        candidate["key"] = "jurong_point"
        with pytest.raises(CatalogConfigurationError):
            validate_entry(normalize_candidate(candidate))


class TestUpsert:

    def test_replace_by_key(self, tmp_path, candidate):
        path = tmp_path / "data" / "malls.json"
        entry = normalize_candidate(candidate)

        assert upsert_entry(entry, path) == 1
        entry["display_name"] = "West Mall (updated)"
        assert upsert_entry(entry, path) == 1
        assert json.loads(path.read_text())[0]["display_name"] == "West Mall (updated)"

        other = dict(entry, key="east_mall")
        assert upsert_entry(other, path) == 2


class TestMain:

    def test_imports_candidate(self, tmp_path, candidate):
        source = tmp_path / "candidate.json"
        source.write_text(json.dumps(candidate))
        output = tmp_path / "malls.json"

        assert main([str(source), "--output", str(output), "--url", "https://example.com"]) == 0
        saved = json.loads(output.read_text())
        assert saved[0]["key"] == "west_mall"

    def test_rejects_invalid(self, tmp_path, candidate):
        candidate["tariff"]["cap_label"] = ""
        source = tmp_path / "candidate.json"
        source.write_text(json.dumps(candidate))
        output = tmp_path / "malls.json"

        assert main([str(source), "--output", str(output)]) == 1
        assert not output.exists()
