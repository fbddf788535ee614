"""
Package entry point.

Allows running the application via:

    python -m ttime

This simply forwards execution to ttime.cli.main().
"""

from ttime.cli import main

if __name__ == "__main__":
    main()
