"""Allow ``python -m horizon_canvas``."""

import sys

from horizon_canvas.cli import main

sys.exit(main())
