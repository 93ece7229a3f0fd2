# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Compliance statistics and validation result models."""

from datetime import datetime, UTC

from pydantic import BaseModel, ConfigDict, Field

from .resource import Resource
from .violations import TagViolation


class TagComplianceStats(BaseModel):
    """Aggregate counters for one validation run."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "total_resources": 10,
                "compliant_resources": 7,
                "fully_exempt_resources": 1,
                "partially_exempt_resources": 1,
                "excluded_resource_types": ["awscc_example_resource"],
                "excluded_resources_count": 2,
                "violations_by_tag": {"Owner": 2},
                "pattern_violations_by_tag": {},
            }
        }
    )

    total_resources: int = Field(0, description="Evaluated resources, excluded ones not counted", ge=0)
    compliant_resources: int = Field(0, description="Resources with no findings", ge=0)
    fully_exempt_resources: int = Field(0, description="Resources whose missing tags are all exempt", ge=0)
    partially_exempt_resources: int = Field(
        0, description="Resources with both exempt and non-exempt missing tags", ge=0
    )
    excluded_resource_types: list[str] = Field(
        default_factory=list, description="Known-excluded types seen, each listed once"
    )
    excluded_resources_count: int = Field(0, description="Known-excluded resource instances", ge=0)
    violations_by_tag: dict[str, int] = Field(
        default_factory=dict, description="Non-exempt missing-tag count per tag"
    )
    pattern_violations_by_tag: dict[str, int] = Field(
        default_factory=dict, description="Pattern violation count per tag"
    )

    @property
    def compliance_percentage(self) -> float:
        if self.total_resources == 0:
            return 0.0
        return self.compliant_resources / self.total_resources * 100

    @property
    def exempt_resources(self) -> int:
        return self.fully_exempt_resources + self.partially_exempt_resources

    @property
    def non_compliant_resources(self) -> int:
        return self.total_resources - self.compliant_resources - self.exempt_resources


class ValidationResult(BaseModel):
    """Outcome of validating a set of resources against a tag policy."""

    passed: bool = Field(..., description="False when any non-exempt finding exists")
    violations: list[TagViolation] = Field(default_factory=list, description="Findings in input order")
    stats: TagComplianceStats = Field(default_factory=TagComplianceStats)
    resources: list[Resource] = Field(
        default_factory=list, description="Evaluated resources, for remediation lookups"
    )
    scan_timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Timestamp when the validation was performed",
    )

    def find_resource(self, resource_type: str, resource_name: str) -> Resource | None:
        for resource in self.resources:
            if resource.type == resource_type and resource.name == resource_name:
                return resource
        return None


class ModuleResourceValidation(BaseModel):
    """Validation outcome for one resource created by a module."""

    resource_type: str
    resource_name: str
    resource_path: str
    is_compliant: bool
    violation: TagViolation | None = None
    module_path: str
    module_name: str
    module_source: str
    is_external: bool


class ModuleValidationSummary(BaseModel):
    """Compliance summary across direct and module-created resources."""

    direct_total: int = Field(0, ge=0)
    direct_compliant: int = Field(0, ge=0)
    module_total: int = Field(0, ge=0)
    module_compliant: int = Field(0, ge=0)

    @property
    def total_resources(self) -> int:
        return self.direct_total + self.module_total

    @property
    def total_compliant(self) -> int:
        return self.direct_compliant + self.module_compliant

    @property
    def compliance_percentage(self) -> float:
        if self.total_resources == 0:
            return 0.0
        return self.total_compliant / self.total_resources * 100


class ModuleValidationResult(BaseModel):
    """Validation of direct and module-created resources in one pass."""

    direct: ValidationResult
    module_resources: list[ModuleResourceValidation] = Field(default_factory=list)
    summary: ModuleValidationSummary = Field(default_factory=ModuleValidationSummary)
    passed: bool = True
