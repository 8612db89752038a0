"""Allow ``python -m shelfmind.cli`` execution."""

import sys

from shelfmind.cli.vectorize import main

sys.exit(main())
