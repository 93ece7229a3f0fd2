# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""
Command-line entry point for the Terraform tag compliance checker.

Usage:
    tag-compliance -c policy.yaml                      # Validate *.tf in the current directory
    tag-compliance -c policy.yaml -d infra/            # Validate another directory
    tag-compliance -c policy.yaml -p plan.json         # Validate a plan (terraform show -json)
    tag-compliance -c policy.yaml -r report.html       # Also write an HTML report
    tag-compliance -c policy.yaml --remediate          # Print suggested fixes
"""

import argparse
import logging
import sys

from pydantic import ValidationError

from . import __version__
from .config import LOG_LEVELS, Settings, get_settings
from .models import ReportFormat, ValidationResult
from .services import (
    ComplianceService,
    ModuleTagInheritance,
    PolicyNotFoundError,
    PolicyService,
    PolicyValidationError,
    RemediationService,
    ReportService,
)
from .utils.resource_type_config import ResourceTypeConfig

logger = logging.getLogger(__name__)

EXIT_PASSED = 0
EXIT_FAILED = 1


def configure_logging(log_level: str) -> None:
    """
    Configure logging for the application.

    Log records go to stderr so that stdout only carries results.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    numeric_level = getattr(logging, log_level.upper(), logging.ERROR)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tag-compliance",
        description="Check that Terraform resources carry the required tags",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Usage:", 1)[1],
    )

    parser.add_argument(
        "--config",
        "-c",
        help="Path or URL of the policy file (JSON/YAML) listing required tags",
    )
    parser.add_argument(
        "--dir",
        "-d",
        help="Terraform directory to analyze (default: current directory)",
    )
    parser.add_argument(
        "--plan",
        "-p",
        help="Terraform plan JSON file to analyze instead of a directory",
    )
    parser.add_argument(
        "--modules-dir",
        help="Directory whose module calls supply inherited tags for plan resources",
    )
    parser.add_argument(
        "--report",
        "-r",
        help="Path of the report file to write",
    )
    parser.add_argument(
        "--report-format",
        choices=[f.value for f in ReportFormat],
        help="Report format (default: inferred from the report file extension)",
    )
    parser.add_argument(
        "--remediate",
        action="store_true",
        help="Show remediation suggestions for non-compliant resources",
    )
    parser.add_argument(
        "--exemptions",
        "-e",
        help="Path or URL of an exemptions file (JSON/YAML)",
    )
    parser.add_argument(
        "--ignore-case",
        action="store_true",
        help="Compare tag keys case-insensitively",
    )
    parser.add_argument(
        "--log-level",
        "-l",
        type=str.upper,
        choices=[*LOG_LEVELS, "WARN"],
        help="Log level (default: ERROR)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output (same as --log-level INFO)",
    )
    parser.add_argument(
        "--version",
        "-V",
        action="store_true",
        help="Show version information",
    )
    return parser


def print_results(result: ValidationResult, remediate: bool) -> None:
    """Print violations, statistics and optional remediation to stdout."""
    stats = result.stats
    errors = [v for v in result.violations if v.is_error]
    findings = [v for v in result.violations if not v.is_error]

    for error in errors:
        print(f"Error: {error.resource_path}: {'; '.join(error.missing_tags)}")

    if findings:
        print("\nTag validation issues found:")
        for v in findings:
            details = []
            if v.missing_tags:
                details.append(f"missing tags: {', '.join(v.missing_tags)}")
            for pattern_violation in v.pattern_violations:
                details.append(f"{pattern_violation.tag_name}: {pattern_violation.message}")
            suffix = ""
            if v.is_exempt:
                suffix = f" [{v.classification.value}"
                suffix += f": {v.exempt_reason}]" if v.exempt_reason else "]"
            print(f"  - {v.resource_type} '{v.resource_name}' ({v.resource_path}): "
                  f"{'; '.join(details)}{suffix}")

    print("\nSummary:")
    print(f"  Total resources: {stats.total_resources}")
    print(f"  Compliant: {stats.compliant_resources} ({stats.compliance_percentage:.1f}%)")
    print(f"  Non-compliant: {stats.non_compliant_resources}")
    print(f"  Exempt: {stats.fully_exempt_resources} fully, "
          f"{stats.partially_exempt_resources} partially")
    if stats.excluded_resources_count:
        print(f"  Excluded: {stats.excluded_resources_count} "
              f"({', '.join(stats.excluded_resource_types)})")

    if remediate and findings:
        remediation = RemediationService()
        print("\nRemediation suggestions:")
        # provider family -> (a resource type of that family, missing tags)
        missing_by_family: dict[str, tuple[str, list[str]]] = {}
        for v in findings:
            snippet = remediation.remediate(v, result)
            if not snippet:
                continue
            print(f"\n# {v.resource_type}.{v.resource_name} ({v.resource_path})")
            print(snippet)
            family = v.resource_type.split("_", 1)[0]
            _, missing = missing_by_family.setdefault(family, (v.resource_type, []))
            missing.extend(t for t in v.missing_tags if t not in missing)

        for family, (resource_type, missing) in missing_by_family.items():
            snippet = remediation.suggest_provider_defaults(missing, resource_type)
            if snippet:
                print(f"\n# Or set provider defaults for {family}:")
                print(snippet)

    if result.passed:
        print("\nAll resources have the required tags!")
    else:
        print("\nTag validation failed. Please fix the issues above.")


def run(args: argparse.Namespace, config: Settings) -> int:
    """Run one validation with parsed arguments over the given settings."""
    policy_location = args.config or config.policy_path
    if not policy_location:
        print("Error: Config file is required (--config or TAG_POLICY_PATH)", file=sys.stderr)
        return EXIT_FAILED

    policy_service = PolicyService(policy_location, remote_timeout=config.remote_timeout)
    try:
        policy_service.load_policy()
        exemptions_location = args.exemptions or config.exemptions_path
        if exemptions_location:
            policy_service.load_exemptions(exemptions_location)
        if args.ignore_case or config.ignore_tag_case:
            policy_service.set_ignore_tag_case(True)
        policy = policy_service.get_policy()
    except (PolicyNotFoundError, PolicyValidationError) as e:
        logger.error(f"Error loading config: {e}")
        print(f"Error loading config: {e}", file=sys.stderr)
        return EXIT_FAILED

    print(f"Loaded configuration with {len(policy.required_tags)} required tags")

    service = ComplianceService(
        policy,
        resource_types=ResourceTypeConfig(config.resource_types_config_path),
        provider_scope=config.provider_scope,
    )

    if args.plan:
        inheritance = None
        if args.modules_dir:
            inheritance = ModuleTagInheritance()
            inheritance.load_module_tags(args.modules_dir)
        result = service.validate_plan(args.plan, inheritance)
    else:
        result = service.validate_directory(args.dir or config.terraform_dir)

    print_results(result, args.remediate)

    report_path = args.report or config.report_path or policy.report_path
    if report_path:
        report_format = ReportFormat(args.report_format) if args.report_format else None
        try:
            written = ReportService().write_report(
                result, report_path, report_format, include_remediation=args.remediate
            )
        except OSError as e:
            logger.error(f"Error writing report: {e}")
            print(f"Error writing report: {e}", file=sys.stderr)
            return EXIT_FAILED
        print(f"Report written to {written}")

    return EXIT_PASSED if result.passed else EXIT_FAILED


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the command line."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"tag-compliance {__version__}")
        return EXIT_PASSED

    try:
        config = get_settings()
    except ValidationError as e:
        print(f"Invalid settings: {e}", file=sys.stderr)
        return EXIT_FAILED

    log_level = args.log_level or ("INFO" if args.verbose else config.log_level)
    configure_logging("WARNING" if log_level == "WARN" else log_level)

    return run(args, config)


if __name__ == "__main__":
    sys.exit(main())
