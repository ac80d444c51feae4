"""
Run with: python -m graphi
"""
import sys

from graphi.main import main

if __name__ == "__main__":
    sys.exit(main())
