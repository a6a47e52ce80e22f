#!/usr/bin/env python3
"""
Trip Client Connection Diagnostic Script
Run this to check that the trip client and the planning service are reachable
"""

import sys

import requests

from eld_trip_client.api.config import get_planner_config


def test_client_endpoints(base_url):
    """Test the trip client's own HTTP endpoints"""
    print("🔍 Testing trip client endpoints...")

    for endpoint in ["/debug", "/trips/health", "/trips/api/config"]:
        try:
            response = requests.get(f"{base_url}{endpoint}", timeout=10)
            print(f"✅ {endpoint}: {response.status_code}")
            if endpoint == "/trips/health":
                print(f"   Planner status: {response.json().get('planner')}")
        except Exception as e:
            print(f"❌ {endpoint}: {e}")


def test_planner(planner_url):
    """Test the planning service directly"""
    print(f"\n🔍 Testing planner at {planner_url}...")

    for endpoint in ["/health/", "/trips/list/?limit=1"]:
        try:
            response = requests.get(f"{planner_url}{endpoint}", timeout=10)
            print(f"✅ {endpoint}: {response.status_code}")
        except Exception as e:
            print(f"❌ {endpoint}: {e}")


def main():
    """Main diagnostic function"""
    print("🚀 Trip Client Diagnostics")
    print("=" * 50)

    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:5000"
    planner_url = sys.argv[2] if len(sys.argv) > 2 else get_planner_config()["base_url"]

    test_client_endpoints(base_url)
    test_planner(planner_url)

    print("\n📋 Next Steps:")
    print("1. If the planner is unreachable, check PLANNER_API_URL")
    print("2. If /trips/api/config fails, set AZURE_MAPS_KEY or GOOGLE_MAPS_API_KEY")
    print("3. Check the server logs for errors")


if __name__ == "__main__":
    main()
