#!/usr/bin/env python3
"""
Import a mall parking tariff into the JSON mall catalog
Normalizes a candidate entry, validates it against the rate catalog rules
and upserts it by key into the file named by MALL_CATALOG_PATH
"""

import argparse
import json
import sys
from datetime import date
from pathlib import Path

from exceptions import CatalogConfigurationError
from rate_catalog import DEFAULT_CATALOG, build_mall_entries, normalize_alias, validate_catalog

DEFAULT_OUTPUT = "data/mall_rates.json"
DEFAULT_DAY_START_MINS = 420
DEFAULT_DAY_END_MINS = 1320
DEFAULT_GEOFENCE_RADIUS_M = 800
BANDS = ("weekday", "weekend_or_ph", "night")


def normalize_candidate(raw, source_url=""):
    """Turn a loosely-typed tariff record into a catalog entry"""
    tariff = raw.get("tariff") or {}
    fallback_aliases = [raw.get("display_name"), str(raw.get("key") or "").replace("_", " ")]
    aliases = []
    for alias in list(raw.get("aliases") or []) + fallback_aliases:
        alias = normalize_alias(alias)
        if alias and alias not in aliases:
            aliases.append(alias)

    entry = {
        "key": raw.get("key"),
        "display_name": raw.get("display_name"),
        "aliases": aliases,
        "tariff": {
            "day_start_mins": int(tariff.get("day_start_mins", DEFAULT_DAY_START_MINS)),
            "day_end_mins": int(tariff.get("day_end_mins", DEFAULT_DAY_END_MINS)),
            "cap_label": str(tariff.get("cap_label") or ""),
            "source_url": source_url or str(tariff.get("source_url") or ""),
            "last_verified_at": date.today().isoformat(),
        },
    }
    for band in BANDS:
        if band in tariff:
            entry["tariff"][band] = dict(tariff[band])

    geofence = raw.get("geofence") or {}
    try:
        entry["geofence"] = {
            "lat": float(geofence["lat"]),
            "lng": float(geofence["lng"]),
            "radius_m": float(geofence.get("radius_m") or DEFAULT_GEOFENCE_RADIUS_M),
        }
    except (KeyError, TypeError, ValueError):
        pass

    return entry


def validate_entry(entry):
    """Raise CatalogConfigurationError if the entry would not load"""
    parsed = build_mall_entries([entry])
    validate_catalog(DEFAULT_CATALOG.with_mall_entries(parsed))


def upsert_entry(entry, output_path):
    """Replace the entry with the same key, or append it"""
    path = Path(output_path)
    entries = []
    if path.exists():
        entries = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(entries, list):
            entries = []

    for i, existing in enumerate(entries):
        if existing.get("key") == entry["key"]:
            entries[i] = entry
            break
    else:
        entries.append(entry)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(entries, indent=2) + "\n", encoding="utf-8")
    return len(entries)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Import a mall parking tariff candidate")
    parser.add_argument("candidate", help="JSON file holding one tariff candidate")
    parser.add_argument("--url", default="", help="Source URL of the published rates")
    parser.add_argument("--output", default=DEFAULT_OUTPUT, help="Mall catalog JSON file")
    args = parser.parse_args(argv)

    raw = json.loads(Path(args.candidate).read_text(encoding="utf-8"))
    entry = normalize_candidate(raw, args.url)

    try:
        validate_entry(entry)
    except CatalogConfigurationError as e:
        print("❌ Validation failed:")
        for problem in e.details.get("problems", []):
            print(f"  - {problem}")
        print(json.dumps(entry, indent=2))
        return 1

    total = upsert_entry(entry, args.output)
    print(f"✅ Saved {entry['display_name']} to {args.output} ({total} entries)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
