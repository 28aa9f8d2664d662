"""Allow running as ``python -m wgddns``."""

from wgddns.cli import main

if __name__ == "__main__":
    main()
