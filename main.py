#!/usr/bin/env python3
"""
GitHub OSS Stats

Main entry point for the contribution stats collector.
"""

from ossstats.cli import main

if __name__ == '__main__':
    main()
