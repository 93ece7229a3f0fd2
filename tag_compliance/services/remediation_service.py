# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Generates Terraform snippets that add missing required tags."""

import re

from ..models import TagDialect, TagViolation, ValidationResult
from ..utils.resource_type_config import ResourceTypeConfig, get_resource_type_config
from .extraction_service import MODULE_RESOURCE_TYPE

PLACEHOLDER = "CHANGE_ME"
PLACEHOLDER_COMMENT = "# Added missing required tag"

_BARE_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


def _format_key(key: str) -> str:
    return key if _BARE_KEY_RE.match(key) else f'"{_escape(key)}"'


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _map_lines(
    existing: dict[str, str], missing: list[str], indent: str
) -> list[str]:
    lines = [f'{indent}{_format_key(k)} = "{_escape(v)}"' for k, v in sorted(existing.items())]
    lines += [f'{indent}{_format_key(t)} = "{PLACEHOLDER}"  {PLACEHOLDER_COMMENT}' for t in missing]
    return lines


class RemediationService:
    """
    Service for building remediation suggestions from violations.

    Snippets reproduce the resource's tag attribute with existing tags kept
    and every missing tag added with a placeholder value.
    """

    def __init__(self, resource_types: ResourceTypeConfig | None = None):
        self.resource_types = resource_types or get_resource_type_config()

    def generate_remediation_code(
        self,
        resource_type: str,
        resource_name: str,
        missing_tags: list[str],
        existing_tags: dict[str, str] | None = None,
    ) -> str:
        """
        Build a resource block snippet with the missing tags added.

        Args:
            resource_type: Terraform resource type
            resource_name: Terraform resource name
            missing_tags: Tags to add with a placeholder value
            existing_tags: Tags already on the resource, kept as they are

        Returns:
            Terraform source text
        """
        existing = existing_tags or {}
        attribute = self.resource_types.get_tag_attribute(resource_type)
        if resource_type == MODULE_RESOURCE_TYPE:
            header = f'module "{resource_name}" {{'
        else:
            header = f'resource "{resource_type}" "{resource_name}" {{'
        lines = [
            header,
            "  # Existing attributes preserved",
            "",
        ]

        if self.resource_types.get_dialect(resource_type) == TagDialect.LIST_OF_PAIRS:
            lines.append(f"  {attribute} = [")
            pairs = [(k, _escape(v), "") for k, v in sorted(existing.items())]
            pairs += [(t, PLACEHOLDER, f"  {PLACEHOLDER_COMMENT}") for t in missing_tags]
            for key, value, comment in pairs:
                lines.append("    {")
                lines.append(f'      key   = "{_escape(key)}"')
                lines.append(f'      value = "{value}"{comment}')
                lines.append("    },")
            lines.append("  ]")
        else:
            lines.append(f"  {attribute} = {{")
            lines += _map_lines(existing, missing_tags, "    ")
            lines.append("  }")

        lines.append("}")
        return "\n".join(lines)

    def suggest_provider_defaults(self, missing_tags: list[str], resource_type: str) -> str | None:
        """
        Build a provider block snippet supplying the missing tags as defaults.

        Returns:
            Terraform source text, or None when the resource's provider has no
            default tags feature
        """
        if not missing_tags:
            return None
        family = resource_type.split("_", 1)[0]
        header = [f'provider "{family}" {{', "  # Existing provider configuration preserved", ""]

        if family == "aws":
            body = ["  default_tags {", "    tags = {"]
            body += _map_lines({}, missing_tags, "      ")
            body += ["    }", "  }"]
        elif family == "google":
            body = ["  default_labels = {"]
            body += _map_lines({}, missing_tags, "    ")
            body.append("  }")
        elif family == "azapi":
            body = ["  default_tags = {"]
            body += _map_lines({}, missing_tags, "    ")
            body.append("  }")
        else:
            return None

        return "\n".join(header + body + ["}"])

    def remediate(self, violation: TagViolation, result: ValidationResult) -> str | None:
        """Build the resource snippet for one violation of a validation result."""
        if violation.is_error or not violation.missing_tags:
            return None
        resource = result.find_resource(violation.resource_type, violation.resource_name)
        existing = resource.tags if resource is not None else {}
        return self.generate_remediation_code(
            violation.resource_type, violation.resource_name, violation.missing_tags, existing
        )
