#!/usr/bin/env python3
"""Run a command in a PTY and interpret its marker output.

Usage:
    python run.py [--config config.yaml] [--prompt TEXT] [--autowork]
                  [--debug] [--trace] [--verbose] COMMAND [ARGS...]
"""
import asyncio

from ptyscribe.main import main

if __name__ == "__main__":
    asyncio.run(main())
