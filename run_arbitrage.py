#!/usr/bin/env python3
"""
Ekubo arbitrage runner (see ekubo_arbitrage.cli for options)
"""
import sys

from ekubo_arbitrage.cli import main

if __name__ == "__main__":
    sys.exit(main())
