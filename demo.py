#!/usr/bin/env python3
"""
ParkSmart SG - Interactive Demo
Walks through carpark ranking, time-aware pricing and recommendations
against a running backend
"""

import requests
from datetime import datetime, timedelta
import time

BASE_URL = "http://localhost:8000"
API = f"{BASE_URL}/api/v1"

# Orchard Road, inside the central area and an ERP zone
ORCHARD = {"lat": 1.3040, "lng": 103.8320}
JURONG_POINT = {"lat": 1.3397, "lng": 103.7067}


def print_header(text):
    """Print formatted header"""
    print("\n" + "=" * 60)
    print(f" {text}")
    print("=" * 60)


def next_weekday(weekday, hour, minute=0):
    """Next date with the given weekday (Mon=0), at hour:minute SGT wall time"""
    today = datetime.now()
    days = (weekday - today.weekday()) % 7 or 7
    return (today + timedelta(days=days)).replace(hour=hour, minute=minute, second=0, microsecond=0)


def demo_cost_breakdown():
    """Show how one session is priced at different times"""
    print_header("FEATURE 1: Time-Aware Pricing")

    sessions = [
        ("HDB, Tue 10am, 2h", {"agency": "HDB", "duration": 2, "start": next_weekday(1, 10)}),
        ("HDB central, Tue 10am, 2h", {"agency": "HDB", "duration": 2, "central": True, "start": next_weekday(1, 10)}),
        ("HDB, Tue 9:30pm, 3h", {"agency": "HDB", "duration": 3, "start": next_weekday(1, 21, 30)}),
        ("HDB BE3, Sun 11am, 3h", {"agency": "HDB", "duration": 3, "facility_id": "BE3", "start": next_weekday(6, 11)}),
        ("Mall, Tue 10am, 12h", {"agency": "LTA", "duration": 12, "start": next_weekday(1, 10)}),
    ]

    for label, params in sessions:
        params = dict(params, start=params["start"].isoformat())
        response = requests.get(f"{API}/cost", params=params)

        if response.status_code == 200:
            result = response.json()
            print(f"\n💰 {label}: ${result['cost']:.2f}")
            print(f"   ↳ Rate: {result['rate_label']}")
            print(f"   ↳ Cap: {result['cap_label']}")
            print(f"   ↳ Day {result['day_hours']}h / night {result['night_hours']}h")
            if result['free_day_applied']:
                print("   ↳ 🎉 Free parking scheme applied")

        time.sleep(0.5)


def demo_ranking():
    """Rank carparks around Orchard Road"""
    print_header("FEATURE 2: Ranked Carparks")

    for priority in ("cheapest", "closest", "balanced"):
        response = requests.get(
            f"{API}/carparks",
            params={**ORCHARD, "duration": 2, "priority": priority}
        )

        if response.status_code != 200:
            print(f"\n⚠️  Search failed: {response.json().get('error', {}).get('message')}")
            return

        data = response.json()
        print(f"\n🏆 Priority '{priority}': {data['total']} carparks within range")
        for carpark in data["carparks"][:3]:
            badge = f" [{carpark['badge']}]" if carpark.get("badge") else ""
            facility = carpark["facility"]
            print(f"   {carpark['score']:3d}  {facility['name']} - ${carpark['pricing']['cost']:.2f}, "
                  f"{carpark['walk_minutes']} min walk{badge}")

        time.sleep(0.5)


def demo_recommendations():
    """Show the banner picked at different times of day"""
    print_header("FEATURE 3: Smart Recommendations")

    times_to_check = [
        ("Tuesday 8am", next_weekday(1, 8)),
        ("Tuesday 10:05pm", next_weekday(1, 22, 5)),
        ("Tuesday 11pm", next_weekday(1, 23)),
        ("Sunday noon", next_weekday(6, 12)),
    ]

    for label, start in times_to_check:
        response = requests.get(
            f"{API}/carparks",
            params={**ORCHARD, "duration": 3, "start": start.isoformat()}
        )

        if response.status_code == 200:
            data = response.json()
            banner = data.get("recommendation")
            print(f"\n   {label}")
            print(f"   ↳ {banner['message'] if banner else 'No banner'}")
            if data["erp"]["total"]:
                print(f"   ↳ 🚦 ERP ~${data['erp']['total']:.2f} ({data['erp']['note']})")

        time.sleep(0.5)


def demo_mall_rates():
    """Official mall tariffs near a mall destination"""
    print_header("FEATURE 4: Mall Tariffs")

    response = requests.get(
        f"{API}/carparks",
        params={**JURONG_POINT, "destination": "Jurong Point", "duration": 2}
    )

    if response.status_code == 200:
        for carpark in response.json()["carparks"]:
            pricing = carpark["pricing"]
            if pricing["rate_source"] == "official":
                print(f"\n🛍️  {carpark['facility']['name']}: ${pricing['cost']:.2f} ({pricing['rate_label']})")


def main():
    print("\n🚗 PARKSMART SG - LIVE DEMO 🚗")
    print("Time-aware carpark costs for Singapore")

    try:
        response = requests.get(f"{API}/health")
        response.raise_for_status()
    except requests.RequestException:
        print("\n⚠️  ERROR: Backend server is not running!")
        print("Please run: cd backend && uvicorn main:app --reload")
        return

    print(f"Rate catalog {response.json()['catalog_version']}")

    demo_cost_breakdown()
    time.sleep(1)

    demo_ranking()
    time.sleep(1)

    demo_recommendations()
    time.sleep(1)

    demo_mall_rates()

    print_header("READY TO USE!")
    print(f"\n✅ Backend API: {API}/docs")


if __name__ == "__main__":
    main()
