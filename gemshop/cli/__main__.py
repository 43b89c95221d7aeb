"""Allow ``python -m gemshop.cli`` execution."""

from gemshop.cli.main import main

main()
