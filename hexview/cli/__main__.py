#!/usr/bin/env python3
"""Entry point for hexview CLI when run as python -m hexview.cli."""

if __name__ == "__main__":
    from hexview.cli.main import main

    main()
