"""Allow running ffsys as ``python -m ffsys``."""

from .cli import main

if __name__ == "__main__":
    main()
