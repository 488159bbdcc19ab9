"""Allow running the CLI with python -m ndrc."""

import sys

from ndrc.cli import main

sys.exit(main())
