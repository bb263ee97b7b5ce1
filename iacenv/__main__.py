"""
Entry point for running iacenv as a module.

Usage: python -m iacenv TOOL COMMAND [options]
"""

from iacenv.cli.parser import main

if __name__ == "__main__":
    main()
