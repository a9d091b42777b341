"""Allow ``python -m shellgate``."""

from shellgate.cli.cli import main

if __name__ == "__main__":
    main()
