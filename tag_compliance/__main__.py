"""
Allow running the checker as a Python module.

Usage:
    python -m tag_compliance -c policy.yaml -d infra/

This is equivalent to running the tag-compliance console script.
"""

import sys

from .cli import main

sys.exit(main())
