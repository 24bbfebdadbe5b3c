"""
Focus Time OS - Main entry point.
"""

import sys

from focus_os.cli import main

if __name__ == "__main__":
    sys.exit(main())
