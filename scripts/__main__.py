"""Allow `python -m scripts <request.json>` by running the allocation script."""

import sys

from scripts.allocate import main

sys.exit(main())
