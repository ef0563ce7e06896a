"""Main entry point when executing campfin as a package.

This allows running the package using python -m campfin.
"""

from campfin.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
