"""Enumerations for tag provenance, dialects and compliance outcomes."""

from enum import Enum


class TagOrigin(str, Enum):
    """Where a resolved tag value came from."""

    RESOURCE = "resource"
    PROVIDER_DEFAULT = "provider_default"
    MODULE_CALL = "module_call"


class TagDialect(str, Enum):
    """Shape of the tag attribute a resource type uses."""

    MAP = "map"
    LIST_OF_PAIRS = "list_of_pairs"


class ResourceClassification(str, Enum):
    """Compliance classification of a single evaluated resource."""

    COMPLIANT = "compliant"
    FULLY_EXEMPT = "fully_exempt"
    PARTIALLY_EXEMPT = "partially_exempt"
    NON_COMPLIANT = "non_compliant"


class ReportFormat(str, Enum):
    """Supported report output formats."""

    HTML = "html"
    JSON = "json"
    MARKDOWN = "markdown"
