#!/usr/bin/env python3
"""
dockwire
Application entry point
"""

from dockwire.cli import run_cli


def main():
    """Main function"""
    run_cli()


if __name__ == "__main__":
    main()
