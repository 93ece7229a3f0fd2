"""
Integration tests for validating Terraform plan documents end to end.

Plans are produced by `terraform show -json`; these tests use trimmed-down
documents with the same structure.
"""

import json

import pytest

from tag_compliance.cli import main
from tag_compliance.models import ModuleResource, TagPolicy
from tag_compliance.services import ComplianceService, ExtractionService, ModuleTagInheritance


def _change(address, resource_type, after, module_address=None, actions=("create",)):
    change = {
        "address": address,
        "mode": "managed",
        "type": resource_type,
        "name": address.rsplit(".", 1)[-1],
        "change": {"actions": list(actions), "after": after},
    }
    if module_address:
        change["module_address"] = module_address
    return change


PLAN = {
    "format_version": "1.2",
    "resource_changes": [
        _change(
            "aws_instance.web",
            "aws_instance",
            {
                "tags": {"Name": "web"},
                "tags_all": {"Name": "web", "Owner": "platform", "Environment": "prod"},
            },
        ),
        _change(
            "google_storage_bucket.assets",
            "google_storage_bucket",
            {
                "labels": {"name": "assets"},
                "effective_labels": {"name": "assets", "goog-terraform-provisioned": "true"},
            },
        ),
        _change(
            "module.vpc.aws_vpc.this[0]",
            "aws_vpc",
            {"tags": {"Name": "main"}, "tags_all": {"Name": "main", "Environment": "prod"}},
            module_address="module.vpc",
        ),
        _change("aws_instance.retired", "aws_instance", None, actions=("delete",)),
    ],
    "configuration": {
        "root_module": {
            "module_calls": {
                "vpc": {"source": "terraform-aws-modules/vpc/aws", "version_constraint": "~> 5.0"}
            }
        }
    },
}

MODULES_TF = '''
module "vpc" {
  source  = "terraform-aws-modules/vpc/aws"
  version = "~> 5.0"

  tags = {
    Owner = "network-team"
  }
}
'''


@pytest.fixture
def plan_file(tmp_path):
    path = tmp_path / "plan.json"
    path.write_text(json.dumps(PLAN))
    return path


class TestPlanValidation:
    """Plan validation through the services."""

    def test_merged_tags_are_used(self, plan_file, resource_types):
        policy = TagPolicy(required_tags=["Name", "Owner", "Environment"])
        service = ComplianceService(policy, resource_types)
        result = service.validate_plan(plan_file)

        by_name = {v.resource_name: v for v in result.violations}
        assert "web" not in by_name
        assert by_name["this[0]"].missing_tags == ["Owner"]
        assert by_name["assets"].missing_tags == ["Name", "Owner", "Environment"]
        assert "retired" not in [r.name for r in result.resources]

    def test_module_tags_fill_gaps(self, plan_file, resource_types, terraform_dir):
        inheritance = ModuleTagInheritance()
        inheritance.load_module_tags(terraform_dir({"main.tf": MODULES_TF}))
        service = ComplianceService(TagPolicy(required_tags=["Owner"]), resource_types)

        result = service.validate_plan(plan_file, inheritance)
        names = [v.resource_name for v in result.violations]
        assert "this[0]" not in names
        assert names == ["assets"]

    def test_module_validation_summary(self, plan_file, resource_types):
        extraction = ExtractionService(resource_types).parse_plan(plan_file)
        assert all(isinstance(r, ModuleResource) for r in extraction.module_resources)

        service = ComplianceService(TagPolicy(required_tags=["Environment"]), resource_types)
        result = service.validate_with_modules(extraction.resources, extraction.module_resources)

        assert result.summary.module_total == 1
        assert result.summary.module_compliant == 1
        module_result = result.module_resources[0]
        assert module_result.module_source == "terraform-aws-modules/vpc/aws@~> 5.0"
        assert module_result.is_external
        assert not result.passed


class TestPlanCommandLine:
    """Plan validation through main()."""

    def test_plan_flag(self, capsys, plan_file, write_policy):
        policy_file = write_policy({"required_tags": ["Name"]})
        exit_code = main(["-c", str(policy_file), "-p", str(plan_file)])
        out = capsys.readouterr().out
        assert exit_code == 1
        assert "google_storage_bucket 'assets'" in out
        assert "Total resources: 3" in out

    def test_modules_dir_flag(self, capsys, plan_file, write_policy, terraform_dir):
        policy_file = write_policy({"required_tags": {"Owner": {"pattern": "-team$"}}})
        modules_dir = terraform_dir({"main.tf": MODULES_TF}, name="root")

        main(["-c", str(policy_file), "-p", str(plan_file), "--modules-dir", str(modules_dir)])
        out = capsys.readouterr().out
        assert "aws_vpc 'this[0]'" not in out
        assert "aws_instance 'web' (" in out
        assert "Owner: value 'platform' does not match" in out

    def test_invalid_plan(self, capsys, tmp_path, write_policy):
        policy_file = write_policy({"required_tags": ["Name"]})
        plan_file = tmp_path / "broken.json"
        plan_file.write_text("not json")
        assert main(["-c", str(policy_file), "-p", str(plan_file)]) == 1
        assert "Error parsing Terraform plan" in capsys.readouterr().out
