# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Required-tag policy data models."""

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

WILDCARD = "*"


class TagRequirement(BaseModel):
    """Requirement for a single tag key. No pattern means presence only."""

    pattern: str | None = Field(None, description="Regex the tag value must match")

    _compiled: re.Pattern | None = PrivateAttr(default=None)

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str | None) -> str | None:
        """Reject patterns that do not compile."""
        if not v:
            return None
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"invalid regex pattern '{v}': {e}") from e
        return v

    def model_post_init(self, __context: Any) -> None:
        self._compiled = re.compile(self.pattern) if self.pattern else None

    @property
    def compiled_pattern(self) -> re.Pattern | None:
        return self._compiled

    def matches(self, value: str) -> bool:
        """Check a tag value against the pattern (regex search semantics)."""
        if self._compiled is None:
            return True
        return self._compiled.search(value) is not None


class ResourceExemption(BaseModel):
    """Waives one or more required tags for matching resources."""

    resource_type: str = Field(..., description="Resource type, or * for any type")
    resource_name: str = Field(..., description="Resource name, or * for any name")
    exempt_tags: list[str] = Field(
        default_factory=list, description="Exempted tag keys, or * for all tags"
    )
    reason: str = Field("", description="Why the resource is exempt")

    def matches_resource(self, resource_type: str, resource_name: str) -> bool:
        return self.resource_type in (resource_type, WILDCARD) and self.resource_name in (
            resource_name,
            WILDCARD,
        )

    def covers_tag(self, tag_name: str, ignore_case: bool = False) -> bool:
        for exempt_tag in self.exempt_tags:
            if exempt_tag == WILDCARD or exempt_tag == tag_name:
                return True
            if ignore_case and exempt_tag.lower() == tag_name.lower():
                return True
        return False


class TagPolicy(BaseModel):
    """Complete required-tag policy."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "required_tags": {
                    "Name": {},
                    "Environment": {"pattern": "^(dev|staging|prod)$"},
                    "CostCenter": {"pattern": "^[0-9]{6}$"},
                },
                "exemptions": [
                    {
                        "resource_type": "aws_s3_bucket",
                        "resource_name": "logs",
                        "exempt_tags": ["CostCenter"],
                        "reason": "Shared logging bucket",
                    }
                ],
                "report_path": "reports/tags.html",
            }
        }
    )

    required_tags: dict[str, TagRequirement] = Field(
        default_factory=dict, description="Required tag keys and their value rules"
    )
    exemptions: list[ResourceExemption] = Field(
        default_factory=list, description="Per-resource exemptions"
    )
    report_path: str | None = Field(None, description="Default path for the HTML report")
    ignore_tag_case: bool = Field(
        False, description="Compare tag keys case-insensitively"
    )

    @field_validator("required_tags", mode="before")
    @classmethod
    def normalize_required_tags(cls, v: Any) -> Any:
        """Accept the legacy list form as well as the mapping form."""
        if v is None:
            return {}
        if isinstance(v, list):
            names = {}
            for item in v:
                if not isinstance(item, str):
                    raise ValueError("required_tags list entries must be tag names")
                names[item] = {}
            return names
        if isinstance(v, dict):
            # "Name:" with no value in YAML means presence only
            return {name: ({} if req is None else req) for name, req in v.items()}
        raise ValueError("required_tags must be an array of strings or an object")

    @field_validator("exemptions", mode="before")
    @classmethod
    def normalize_exemptions(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def required_tag_names(self) -> list[str]:
        return list(self.required_tags)

    def find_tag(self, tags: dict[str, Any], tag_name: str) -> tuple[str, Any] | None:
        """Look up a tag key in a mapping using the policy's case rule.

        Returns:
            The (key, value) pair actually found, or None
        """
        if tag_name in tags:
            return tag_name, tags[tag_name]
        if self.ignore_tag_case:
            wanted = tag_name.lower()
            for key, value in tags.items():
                if key.lower() == wanted:
                    return key, value
        return None

    def get_requirement(self, tag_name: str) -> TagRequirement | None:
        found = self.find_tag(self.required_tags, tag_name)
        return found[1] if found else None

    def is_exempt_from_tag(
        self, resource_type: str, resource_name: str, tag_name: str
    ) -> tuple[bool, str]:
        """
        Check whether a resource is exempt from one required tag.

        The first matching exemption wins.

        Returns:
            Tuple of (is_exempt, reason)
        """
        for exemption in self.exemptions:
            if not exemption.matches_resource(resource_type, resource_name):
                continue
            if exemption.covers_tag(tag_name, self.ignore_tag_case):
                return True, exemption.reason
        return False, ""

    def validate_tag_value(self, tag_name: str, tag_value: str) -> tuple[bool, str | None]:
        """
        Validate a tag value against the tag's pattern, if one is defined.

        Returns:
            Tuple of (is_valid, error_message)
        """
        requirement = self.get_requirement(tag_name)
        if requirement is None or requirement.matches(tag_value):
            return True, None
        return (
            False,
            f"value '{tag_value}' does not match required pattern '{requirement.pattern}'",
        )
