"""
Entry point for running topicdrill as a module.

Usage:
    python -m topicdrill study
    python -m topicdrill stats
    python -m topicdrill --help
"""
from .cli.drill_cli import main

if __name__ == "__main__":
    main()
