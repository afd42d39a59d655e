"""
Entry point for running tutoria as a module.

Usage:
    python -m tutoria.delivery student list
    python -m tutoria.delivery --help
"""
from .cli import main

if __name__ == "__main__":
    main()
