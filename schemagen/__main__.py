"""Run the schemagen CLI with ``python -m schemagen``."""

import sys

from .tools.schema_cli import main

if __name__ == "__main__":
    sys.exit(main())
