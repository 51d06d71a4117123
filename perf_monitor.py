#!/usr/bin/env python3
"""
Runtime Performance Monitor - Entry Point

Run this file directly or use: python -m perfmon.main

Usage:
    python perf_monitor.py --help
    python perf_monitor.py --duration 30
    python perf_monitor.py --platform mobile --benchmark-duration 10
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from perfmon.main import main

if __name__ == "__main__":
    sys.exit(main())
