"""Pytest configuration and shared fixtures."""

import json

import pytest
import yaml

from tag_compliance.models import (
    ProviderConfig,
    Resource,
    ResourceExemption,
    TagPolicy,
    TagRequirement,
)
from tag_compliance.utils.resource_type_config import ResourceTypeConfig


# =============================================================================
# Environment and Configuration Fixtures
# =============================================================================

@pytest.fixture
def test_env(monkeypatch):
    """Set up test environment variables."""
    test_vars = {
        "LOG_LEVEL": "DEBUG",
        "TERRAFORM_DIR": ".",
        "PROVIDER_SCOPE": "file",
    }
    for key, value in test_vars.items():
        monkeypatch.setenv(key, value)
    return test_vars


@pytest.fixture(autouse=True)
def isolated_settings_env(monkeypatch, tmp_path):
    """Keep host environment variables and .env files out of the tests."""
    for key in (
        "TAG_POLICY_PATH",
        "POLICY_PATH",
        "TAG_EXEMPTIONS_PATH",
        "TAG_REPORT_PATH",
        "IGNORE_TAG_CASE",
        "RESOURCE_TYPES_CONFIG_PATH",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def resource_types():
    """Capability tables with the embedded defaults."""
    return ResourceTypeConfig()


# =============================================================================
# Test Data Fixtures
# =============================================================================

@pytest.fixture
def sample_policy():
    """Policy requiring Environment and Owner, presence only."""
    return TagPolicy(required_tags=["Environment", "Owner"])


@pytest.fixture
def pattern_policy():
    """Policy with value patterns and one exemption."""
    return TagPolicy(
        required_tags={
            "Name": TagRequirement(),
            "Environment": TagRequirement(pattern="^(dev|staging|prod)$"),
            "CostCenter": TagRequirement(pattern="^[0-9]{6}$"),
        },
        exemptions=[
            ResourceExemption(
                resource_type="aws_s3_bucket",
                resource_name="logs",
                exempt_tags=["CostCenter"],
                reason="Shared logging bucket",
            )
        ],
    )


@pytest.fixture
def sample_resource():
    return Resource(
        type="aws_instance",
        name="web",
        tags={"Environment": "prod"},
        path="main.tf",
    )


@pytest.fixture
def aws_provider():
    return ProviderConfig(name="aws", default_tags={"Owner": "platform"}, path="main.tf")


@pytest.fixture
def write_policy(tmp_path):
    """Write a policy document to a JSON or YAML file and return its path."""

    def _write(data: dict, name: str = "policy.json"):
        path = tmp_path / name
        if name.endswith(".json"):
            path.write_text(json.dumps(data))
        else:
            path.write_text(yaml.safe_dump(data))
        return path

    return _write


@pytest.fixture
def terraform_dir(tmp_path):
    """Create a directory of Terraform files from a {name: content} mapping."""

    def _create(files: dict[str, str], name: str = "infra"):
        directory = tmp_path / name
        directory.mkdir(parents=True, exist_ok=True)
        for filename, content in files.items():
            (directory / filename).write_text(content)
        return directory

    return _create


# =============================================================================
# Pytest Hooks
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "property: marks tests as property-based tests"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark tests by directory
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "property" in str(item.fspath):
            item.add_marker(pytest.mark.property)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
