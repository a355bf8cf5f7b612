"""Allow running as python -m lfsgate."""

import sys

from lfsgate.cli import main

sys.exit(main())
