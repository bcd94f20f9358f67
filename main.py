#!/usr/bin/env python3
"""
Main entry point for the bulk import pipeline.

This is a convenience wrapper that can be run directly:
    python main.py [config.yml] [--log-level LEVEL] [--log-file PATH]

Or via the installed console script:
    bulkimport [config.yml]

For more information, run:
    python main.py --help
"""

import sys

from bulkimport.cli.importer import main as cli_main

if __name__ == "__main__":
    sys.exit(cli_main())
