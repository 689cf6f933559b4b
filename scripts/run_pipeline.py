#!/usr/bin/env python3
"""
Scheduled entry point for the points pipeline.

Intended to be run from cron every few minutes during a tournament:

    */5 * * * * cd /opt/dugout && python scripts/run_pipeline.py --status-jsonl logs/events.jsonl
    0 4 * * *   cd /opt/dugout && python scripts/run_pipeline.py --stages sync_fixtures,sync_squads

See dugout.cli for the full list of flags.
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dugout.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
