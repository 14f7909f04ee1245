"""Allow ``python -m hudson``."""

from hudson.cli import main

main()
