#!/usr/bin/env python3
"""Run the FastAPI server directly."""

from medtracker.server import main

if __name__ == "__main__":
    main()
