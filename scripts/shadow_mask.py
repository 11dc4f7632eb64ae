#!/usr/bin/env python3
"""Render an image as seen through a CRT shadow mask.

Usage:
    python scripts/shadow_mask.py INPUT OUTPUT WIDTH [-t DELTA|INLINE] [-p]

    # Delta-mask triads, 2560 px wide
    python scripts/shadow_mask.py title.png title_crt.png 2560

    # Slot mask, portrait-mounted tube
    python scripts/shadow_mask.py shmup.png shmup_crt.png 1920 -t INLINE -p
"""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.crt_simulator.cli import main

if __name__ == "__main__":
    sys.exit(main())
