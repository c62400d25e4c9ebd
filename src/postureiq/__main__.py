"""
Entry point for running PostureIQ as a module.

Usage:
    python -m postureiq [command] [options]
"""

from postureiq.cli import main

if __name__ == "__main__":
    main()
