"""Allow ``python -m ca66_toolkit``."""

from ca66_toolkit.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
