"""Allow ``python -m tlterm``."""

import sys

from .cli import main

sys.exit(main())
