"""Data models for the Terraform tag compliance checker."""

from .enums import TagOrigin, TagDialect, ResourceClassification, ReportFormat
from .resource import Resource, ModuleResource, ProviderConfig, ModuleCall, TagSource
from .policy import TagPolicy, TagRequirement, ResourceExemption
from .violations import TagViolation, PatternViolation
from .extraction import ExtractionResult
from .compliance import (
    TagComplianceStats,
    ValidationResult,
    ModuleResourceValidation,
    ModuleValidationSummary,
    ModuleValidationResult,
)

__all__ = [
    "TagOrigin",
    "TagDialect",
    "ResourceClassification",
    "ReportFormat",
    "Resource",
    "ModuleResource",
    "ProviderConfig",
    "ModuleCall",
    "TagSource",
    "TagPolicy",
    "TagRequirement",
    "ResourceExemption",
    "TagViolation",
    "PatternViolation",
    "ExtractionResult",
    "TagComplianceStats",
    "ValidationResult",
    "ModuleResourceValidation",
    "ModuleValidationSummary",
    "ModuleValidationResult",
]
