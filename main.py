#!/usr/bin/env python3
"""Run the cold-start benchmark monitor."""

from coldstart.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
