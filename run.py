#!/usr/bin/env python3
"""Convenience runner for the track progress tooling.

Usage:
    python run.py inspect route.gpx
    python run.py replay route.gpx fixes.csv
"""
import sys

from track_progress.cli import main

if __name__ == "__main__":
    sys.exit(main())
