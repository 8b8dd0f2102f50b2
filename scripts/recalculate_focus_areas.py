#!/usr/bin/env python3
"""
Batch recalculate facility focus areas.

Usage:
    python scripts/recalculate_focus_areas.py [--state CA] [--facility 105001]
        [--workers N] [--calculated-at 2024-06-01T02:00:00]
"""
import os
import sys

# Add repository root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from facility_risk.cli import main


if __name__ == "__main__":
    sys.exit(main())
