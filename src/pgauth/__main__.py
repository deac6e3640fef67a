"""Allow ``python -m pgauth``."""

from pgauth.cli.main import main

main()
