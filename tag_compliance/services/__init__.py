"""Service layer for the Terraform tag compliance checker."""

from .policy_service import PolicyService, PolicyValidationError, PolicyNotFoundError
from .extraction_service import ExtractionService
from .resolution_service import TagResolver, ModuleTagInheritance
from .compliance_service import ComplianceService
from .remediation_service import RemediationService
from .report_service import ReportService

__all__ = [
    "PolicyService",
    "PolicyValidationError",
    "PolicyNotFoundError",
    "ExtractionService",
    "TagResolver",
    "ModuleTagInheritance",
    "ComplianceService",
    "RemediationService",
    "ReportService",
]
