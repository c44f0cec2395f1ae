"""Allow running the client with ``python -m mediawiki_bot``."""

from .cli import main

if __name__ == "__main__":
    main()
