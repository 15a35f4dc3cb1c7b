"""
Main entry point for running the Voxelamming client as a module.

    python -m voxelamming house.json --room 1234

is equivalent to the installed ``voxelamming-send`` command.
"""

from .cli import cli_main

if __name__ == "__main__":
    cli_main()
