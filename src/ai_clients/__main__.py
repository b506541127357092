"""Allow ``python -m ai_clients``."""

import sys

from .cli import main

sys.exit(main())
