"""
Package entry point.

Allows running the application via:

    python -m collegeadmin

This simply forwards execution to collegeadmin.cli.main().
"""

from collegeadmin.cli import main

if __name__ == "__main__":
    main()
