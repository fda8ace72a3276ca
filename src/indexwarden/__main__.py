"""``python -m indexwarden``."""

from indexwarden.cli import main

main()
