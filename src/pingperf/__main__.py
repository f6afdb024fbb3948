"""Allow ``python -m pingperf``."""

import sys

from pingperf.cli import main

if __name__ == "__main__":
    sys.exit(main())
