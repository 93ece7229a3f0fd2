"""Terraform tag compliance checker.

Verifies that Terraform resource declarations and plans carry a required set
of tags/labels, honoring provider default tags, module call tags, value
patterns and per-resource exemptions.
"""

__version__ = "0.1.0"
