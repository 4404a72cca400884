"""Allow ``python -m globalmarkets``."""

import sys

from globalmarkets.cli import main

sys.exit(main())
