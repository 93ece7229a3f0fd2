# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Violation data models."""

from pydantic import BaseModel, ConfigDict, Field

from .enums import ResourceClassification

ERROR_RESOURCE_TYPE = "error"


class PatternViolation(BaseModel):
    """A required tag whose resolved value does not match its pattern."""

    tag_name: str = Field(..., description="Required tag name")
    value: str = Field(..., description="Offending resolved value")
    pattern: str = Field(..., description="Pattern the value had to match")
    message: str = Field("", description="Human-readable explanation")


class TagViolation(BaseModel):
    """Represents a resource with missing or invalid required tags."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "resource_type": "aws_s3_bucket",
                "resource_name": "logs",
                "resource_path": "main.tf",
                "missing_tags": ["Owner"],
                "pattern_violations": [],
                "is_exempt": False,
                "exempt_reason": "",
                "classification": "non_compliant",
            }
        }
    )

    resource_type: str = Field(..., description="Terraform resource type")
    resource_name: str = Field(..., description="Terraform resource name")
    resource_path: str = Field(..., description="File or plan the resource came from")
    missing_tags: list[str] = Field(
        default_factory=list,
        description="Missing required tags, exempt ones included, in policy order",
    )
    pattern_violations: list[PatternViolation] = Field(
        default_factory=list, description="Tags present with values failing their pattern"
    )
    is_exempt: bool = Field(False, description="Whether any missing tag is exempt")
    exempt_reason: str = Field("", description="Reason of the first matching exemption")
    classification: ResourceClassification = Field(
        ResourceClassification.NON_COMPLIANT, description="Resource compliance classification"
    )

    @property
    def is_error(self) -> bool:
        return self.resource_type == ERROR_RESOURCE_TYPE

    @classmethod
    def error(cls, path: str, message: str) -> "TagViolation":
        """Build the synthetic violation used to report an unreadable input."""
        return cls(
            resource_type=ERROR_RESOURCE_TYPE,
            resource_name=ERROR_RESOURCE_TYPE,
            resource_path=path,
            missing_tags=[message],
        )
