"""Module entry point for running scripts.doccheck as a package.

Allows: python -m scripts.doccheck <command>
"""

from scripts.doccheck.cli import main
import sys

if __name__ == '__main__':
    sys.exit(main())
