"""Entry point for the Revsite CLI.

Allows running the package directly with ``python -m revsite``.
"""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
