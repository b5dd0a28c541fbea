#!/usr/bin/env python3
"""Main entry point for the TARAI Store application."""

import sys
import os
from pathlib import Path

# Set tokenizers parallelism before any imports to avoid warnings
os.environ["TOKENIZERS_PARALLELISM"] = "false"

# Add src to path for development/direct execution
sys.path.insert(0, str(Path(__file__).parent / "src"))

from cli.main import main


if __name__ == "__main__":
    main()
