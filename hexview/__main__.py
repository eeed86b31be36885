"""Entry point for ``python -m hexview``."""

from hexview.cli.main import main

if __name__ == "__main__":
    main()
