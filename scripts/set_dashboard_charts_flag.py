#!/usr/bin/env python3
"""
Turn the admin dashboard charts on or off.

Usage:
    python scripts/set_dashboard_charts_flag.py --enable | --disable
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.models.schemas import SettingsUpdateRequest
from app.storage.settings_store import update_settings


def main():
    parser = argparse.ArgumentParser(description="Toggle dashboardChartsEnabled.")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--enable", action="store_true")
    group.add_argument("--disable", action="store_true")
    args = parser.parse_args()

    settings = update_settings(SettingsUpdateRequest(dashboard_charts_enabled=args.enable))
    print(f"Dashboard charts flag updated: dashboardChartsEnabled={settings.dashboard_charts_enabled}")


if __name__ == "__main__":
    main()
