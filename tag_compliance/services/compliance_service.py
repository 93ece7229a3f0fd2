# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Compliance service: evaluates resolved resources against a tag policy."""

import logging
from pathlib import Path
from typing import Any, Iterable, NamedTuple

from ..models import (
    ModuleResource,
    ModuleResourceValidation,
    ModuleValidationResult,
    ModuleValidationSummary,
    PatternViolation,
    ProviderConfig,
    Resource,
    ResourceClassification,
    TagComplianceStats,
    TagOrigin,
    TagPolicy,
    TagViolation,
    ValidationResult,
)
from ..utils.plan_reader import is_external_module
from ..utils.resource_type_config import ResourceTypeConfig, get_resource_type_config
from .extraction_service import ExtractionService
from .resolution_service import PROVIDER_SCOPE_FILE, ModuleTagInheritance, TagResolver

logger = logging.getLogger(__name__)


class ResourceOutcome(NamedTuple):
    """Result of checking one resolved resource."""

    classification: ResourceClassification
    violation: TagViolation | None
    non_exempt_missing: list[str]


class ComplianceService:
    """
    Service for checking Terraform resources against required-tag policies.

    Orchestrates extraction, tag resolution and policy evaluation. Every
    validation run is computed from its inputs alone; nothing is cached
    between runs.
    """

    def __init__(
        self,
        policy: TagPolicy,
        resource_types: ResourceTypeConfig | None = None,
        provider_scope: str = PROVIDER_SCOPE_FILE,
        extraction_service: ExtractionService | None = None,
    ):
        """
        Initialize compliance service.

        Args:
            policy: Required-tag policy to evaluate against
            resource_types: Capability tables (defaults to the shared instance)
            provider_scope: Match provider defaults by "file" or "directory"
            extraction_service: Extractor for files and plans
        """
        self.policy = policy
        self.resource_types = resource_types or get_resource_type_config()
        self.provider_scope = provider_scope
        self.extraction_service = extraction_service or ExtractionService(self.resource_types)

    def _find_present_tag(self, resource: Resource, tag_name: str) -> tuple[str, str] | None:
        """Resource tags first, then provider defaults, using the policy case rule."""
        found = self.policy.find_tag(resource.tags, tag_name)
        if found is not None:
            return found
        defaults = {
            key: source.value
            for key, source in resource.tag_sources.items()
            if source.origin == TagOrigin.PROVIDER_DEFAULT
        }
        found = self.policy.find_tag(defaults, tag_name)
        if found is not None:
            logger.debug(
                f"Resource {resource.type} '{resource.name}' inherits tag '{tag_name}' "
                f"from provider default tags"
            )
        return found

    def check_resource(self, resource: Resource) -> ResourceOutcome:
        """
        Check one resolved resource against every required tag.

        Missing tags that are exempt still appear in the violation's
        missing_tags but do not fail the run. Every present tag with a pattern
        is checked, exempt or not.
        """
        missing_tags: list[str] = []
        non_exempt_missing: list[str] = []
        pattern_violations: list[PatternViolation] = []
        is_exempt = False
        exempt_reason = ""

        for tag_name in self.policy.required_tag_names:
            exempt, reason = self.policy.is_exempt_from_tag(resource.type, resource.name, tag_name)
            found = self._find_present_tag(resource, tag_name)

            if found is None:
                missing_tags.append(tag_name)
                if exempt:
                    is_exempt = True
                    exempt_reason = exempt_reason or reason
                else:
                    non_exempt_missing.append(tag_name)
                continue

            _, value = found
            valid, message = self.policy.validate_tag_value(tag_name, value)
            if not valid:
                requirement = self.policy.get_requirement(tag_name)
                pattern_violations.append(
                    PatternViolation(
                        tag_name=tag_name,
                        value=value,
                        pattern=requirement.pattern,
                        message=message,
                    )
                )

        if not missing_tags and not pattern_violations:
            return ResourceOutcome(ResourceClassification.COMPLIANT, None, [])

        if is_exempt and not non_exempt_missing and not pattern_violations:
            classification = ResourceClassification.FULLY_EXEMPT
        elif is_exempt:
            classification = ResourceClassification.PARTIALLY_EXEMPT
        else:
            classification = ResourceClassification.NON_COMPLIANT

        violation = TagViolation(
            resource_type=resource.type,
            resource_name=resource.name,
            resource_path=resource.path,
            missing_tags=missing_tags,
            pattern_violations=pattern_violations,
            is_exempt=is_exempt,
            exempt_reason=exempt_reason,
            classification=classification,
        )
        return ResourceOutcome(classification, violation, non_exempt_missing)

    def evaluate(
        self,
        resources: Iterable[Resource],
        providers: Iterable[ProviderConfig] = (),
        module_inheritance: ModuleTagInheritance | None = None,
        errors: Iterable[TagViolation] = (),
    ) -> ValidationResult:
        """
        Evaluate resources against the policy.

        Known-excluded resource types are counted but never evaluated.

        Args:
            resources: Extracted resources, in deterministic order
            providers: Provider blocks with default tags
            module_inheritance: Module call tags for module resources
            errors: Synthetic error violations from extraction, reported first

        Returns:
            ValidationResult with pass/fail, violations, stats and resolved resources
        """
        resolver = TagResolver(providers, self.provider_scope, module_inheritance)
        stats = TagComplianceStats()
        violations: list[TagViolation] = list(errors)
        resolved_resources: list[Resource] = []
        passed = not violations

        for resource in resources:
            if self.resource_types.is_known_excluded(resource.type):
                if resource.type not in stats.excluded_resource_types:
                    stats.excluded_resource_types.append(resource.type)
                stats.excluded_resources_count += 1
                logger.debug(f"Skipping excluded resource type {resource.type} '{resource.name}'")
                continue

            resolved = resolver.resolve(resource)
            resolved_resources.append(resolved)
            stats.total_resources += 1

            outcome = self.check_resource(resolved)
            for tag_name in outcome.non_exempt_missing:
                stats.violations_by_tag[tag_name] = stats.violations_by_tag.get(tag_name, 0) + 1

            if outcome.classification == ResourceClassification.COMPLIANT:
                stats.compliant_resources += 1
                continue

            violation = outcome.violation
            for pattern_violation in violation.pattern_violations:
                tag_name = pattern_violation.tag_name
                stats.pattern_violations_by_tag[tag_name] = (
                    stats.pattern_violations_by_tag.get(tag_name, 0) + 1
                )
            if outcome.classification == ResourceClassification.FULLY_EXEMPT:
                stats.fully_exempt_resources += 1
            elif outcome.classification == ResourceClassification.PARTIALLY_EXEMPT:
                stats.partially_exempt_resources += 1

            if outcome.non_exempt_missing or violation.pattern_violations:
                passed = False
            violations.append(violation)

        logger.info(
            f"Evaluated {stats.total_resources} resources: {stats.compliant_resources} compliant, "
            f"{len(violations)} with violations, {stats.excluded_resources_count} excluded"
        )
        return ValidationResult(
            passed=passed,
            violations=violations,
            stats=stats,
            resources=resolved_resources,
        )

    def validate_files(self, files: Iterable[tuple[str, str]]) -> ValidationResult:
        """Validate in-memory (path, content) pairs."""
        extraction = self.extraction_service.parse_files(files)
        return self.evaluate(extraction.resources, extraction.providers, errors=extraction.errors)

    def validate_directory(self, directory: str | Path) -> ValidationResult:
        """Validate every *.tf file in a directory."""
        extraction = self.extraction_service.parse_directory(directory)
        return self.evaluate(extraction.resources, extraction.providers, errors=extraction.errors)

    def validate_plan(
        self,
        plan: str | Path | dict[str, Any],
        module_inheritance: ModuleTagInheritance | None = None,
    ) -> ValidationResult:
        """
        Validate a plan document, module-created resources included.

        Plans carry provider defaults already merged into tags_all and
        effective_labels, so no provider blocks are involved.
        """
        extraction = self.extraction_service.parse_plan(plan)
        resources = [*extraction.resources, *extraction.module_resources]
        return self.evaluate(resources, module_inheritance=module_inheritance, errors=extraction.errors)

    def validate_with_modules(
        self,
        direct_resources: Iterable[Resource],
        module_resources: Iterable[ModuleResource],
        providers: Iterable[ProviderConfig] = (),
        module_inheritance: ModuleTagInheritance | None = None,
    ) -> ModuleValidationResult:
        """
        Validate direct and module-created resources with a combined summary.

        Args:
            direct_resources: Resources declared in the root configuration
            module_resources: Resources created inside module calls
            providers: Provider blocks with default tags
            module_inheritance: Module call tags, filled into module resources

        Returns:
            ModuleValidationResult with per-module-resource outcomes
        """
        direct = self.evaluate(direct_resources, providers)
        resolver = TagResolver(providers, self.provider_scope, module_inheritance)

        validations: list[ModuleResourceValidation] = []
        module_compliant = 0
        module_passed = True
        for module_resource in module_resources:
            if self.resource_types.is_known_excluded(module_resource.type):
                continue
            resolved = resolver.resolve(module_resource)
            outcome = self.check_resource(resolved)
            is_compliant = outcome.classification == ResourceClassification.COMPLIANT
            if is_compliant:
                module_compliant += 1
            if outcome.non_exempt_missing or (
                outcome.violation is not None and outcome.violation.pattern_violations
            ):
                module_passed = False
            validations.append(
                ModuleResourceValidation(
                    resource_type=resolved.type,
                    resource_name=resolved.name,
                    resource_path=resolved.path,
                    is_compliant=is_compliant,
                    violation=outcome.violation,
                    module_path=module_resource.module_path,
                    module_name=module_resource.module_name,
                    module_source=module_resource.module_source,
                    is_external=is_external_module(module_resource.module_source),
                )
            )

        summary = ModuleValidationSummary(
            direct_total=direct.stats.total_resources,
            direct_compliant=direct.stats.compliant_resources,
            module_total=len(validations),
            module_compliant=module_compliant,
        )
        return ModuleValidationResult(
            direct=direct,
            module_resources=validations,
            summary=summary,
            passed=direct.passed and module_passed,
        )
