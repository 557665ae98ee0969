"""
Entry point for running the rota tools as a module.

Usage:
    python -m rota validate school.json
    python -m rota candidates school.json L001 --date 2024-10-07
    python -m rota duty school.json -o rostered.json
    python -m rota status school.json
"""

from rota.cli import main

if __name__ == "__main__":
    main()
