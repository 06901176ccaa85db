"""Entry point for running torsion_match as a module.

Usage:
    python -m torsion_match <command> [options]
"""

from torsion_match.cli import main

if __name__ == "__main__":
    main()
