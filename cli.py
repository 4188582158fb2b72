"""CLI entry point - wrapper for `python cli.py`

Runs the main CLI from the cli package.
"""

from cli.main import main

if __name__ == "__main__":
    main()
