"""Allow `python -m iac_tools`."""

import sys

from iac_tools.cli import main

sys.exit(main())
