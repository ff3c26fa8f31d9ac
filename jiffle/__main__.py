"""Allows ``python -m jiffle``."""

import sys

from .cli import main

sys.exit(main())
