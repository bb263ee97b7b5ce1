"""
Entry point for running the iacenv CLI as a module.

Usage: python -m iacenv.cli TOOL COMMAND [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
