#!/usr/bin/env python3
"""Run the notifier service.

Usage::

    # Run with default config
    python scripts/run.py

    # Custom config file, verbose logs
    python scripts/run.py --config config/settings.yaml --log-level DEBUG
"""

from __future__ import annotations

from access_notifier.server import main

if __name__ == "__main__":
    main()
