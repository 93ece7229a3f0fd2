"""
Property-based tests for tag resolution and compliance evaluation.

Properties covered:
- Resolving a resource twice gives the same result as resolving it once
- Evaluating the same resources twice gives the same violations and stats
- Tags declared on a resource always win over provider defaults
- Every evaluated resource falls in exactly one classification
- A wildcard exemption never fails a run on missing tags
- Case-insensitive mode accepts keys that differ only in case
"""

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from tag_compliance.models import (
    ProviderConfig,
    Resource,
    ResourceClassification,
    ResourceExemption,
    TagOrigin,
    TagPolicy,
)
from tag_compliance.services import ComplianceService, TagResolver
from tag_compliance.utils.resource_type_config import ResourceTypeConfig

# =============================================================================
# Strategies for generating test data
# =============================================================================

RESOURCE_TYPES = ["aws_instance", "aws_s3_bucket", "aws_vpc", "azurerm_resource_group"]

tag_key_strategy = st.from_regex(r"[A-Za-z][A-Za-z0-9_]{0,11}", fullmatch=True)
tag_value_strategy = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N"), whitelist_characters="-_. "),
    max_size=20,
)
tags_strategy = st.dictionaries(tag_key_strategy, tag_value_strategy, max_size=6)

resource_strategy = st.builds(
    Resource,
    type=st.sampled_from(RESOURCE_TYPES),
    name=st.from_regex(r"[a-z][a-z0-9_]{0,9}", fullmatch=True),
    tags=tags_strategy,
    path=st.sampled_from(["main.tf", "network.tf"]),
)

required_tags_strategy = st.lists(tag_key_strategy, min_size=1, max_size=5, unique=True)

fixture_settings = settings(
    max_examples=100, suppress_health_check=[HealthCheck.function_scoped_fixture]
)


@pytest.fixture(scope="module")
def types():
    return ResourceTypeConfig()


class TestResolutionProperties:
    """Properties of tag resolution."""

    @given(resource=resource_strategy, defaults=tags_strategy)
    @fixture_settings
    def test_resolution_is_idempotent(self, resource, defaults):
        providers = [ProviderConfig(name="aws", default_tags=defaults, path="main.tf")]
        resolver = TagResolver(providers)
        once = resolver.resolve(resource)
        assert resolver.resolve(once) == once

    @given(resource=resource_strategy, defaults=tags_strategy)
    @fixture_settings
    def test_resource_tags_take_precedence(self, resource, defaults):
        providers = [ProviderConfig(name="aws", default_tags=defaults, path=resource.path)]
        resolved = TagResolver(providers).resolve(resource)

        for key, value in resource.tags.items():
            assert resolved.tag_sources[key].origin == TagOrigin.RESOURCE
            assert resolved.tag_sources[key].value == value
        for key, source in resolved.tag_sources.items():
            if key not in resource.tags:
                assert source.origin == TagOrigin.PROVIDER_DEFAULT
                assert resource.provider_family == "aws"
                assert defaults[key] == source.value


class TestEvaluationProperties:
    """Properties of compliance evaluation."""

    @given(
        resources=st.lists(resource_strategy, max_size=8),
        required=required_tags_strategy,
    )
    @fixture_settings
    def test_classifications_partition_resources(self, types, resources, required):
        result = ComplianceService(TagPolicy(required_tags=required), types).evaluate(resources)
        stats = result.stats

        assert stats.total_resources == len(resources)
        assert (
            stats.compliant_resources + stats.exempt_resources + stats.non_compliant_resources
            == stats.total_resources
        )
        assert stats.compliant_resources + len(result.violations) == stats.total_resources
        assert result.passed == all(
            v.classification == ResourceClassification.FULLY_EXEMPT for v in result.violations
        )

    @given(
        resources=st.lists(resource_strategy, max_size=8),
        required=required_tags_strategy,
        defaults=tags_strategy,
    )
    @fixture_settings
    def test_evaluation_is_idempotent(self, types, resources, required, defaults):
        service = ComplianceService(TagPolicy(required_tags=required), types)
        providers = [ProviderConfig(name="aws", default_tags=defaults, path="main.tf")]
        first = service.evaluate(resources, providers)
        second = service.evaluate(resources, providers)
        assert first.violations == second.violations
        assert first.stats == second.stats
        assert first.passed == second.passed

    @given(
        resources=st.lists(resource_strategy, min_size=1, max_size=8),
        required=required_tags_strategy,
    )
    @fixture_settings
    def test_wildcard_exemption_always_passes(self, types, resources, required):
        policy = TagPolicy(
            required_tags=required,
            exemptions=[ResourceExemption(resource_type="*", resource_name="*", exempt_tags=["*"])],
        )
        result = ComplianceService(policy, types).evaluate(resources)
        assert result.passed
        assert result.stats.violations_by_tag == {}
        for violation in result.violations:
            assert violation.classification == ResourceClassification.FULLY_EXEMPT

    @given(
        required=st.lists(tag_key_strategy, min_size=1, max_size=5, unique_by=str.lower),
        value=tag_value_strategy,
    )
    @fixture_settings
    def test_case_toggle(self, types, required, value):
        tags = {name.swapcase(): value for name in required}
        resource = Resource(type="aws_vpc", name="main", tags=tags, path="main.tf")

        sensitive = TagPolicy(required_tags=required)
        insensitive = TagPolicy(required_tags=required, ignore_tag_case=True)

        assert not ComplianceService(sensitive, types).evaluate([resource]).passed
        assert ComplianceService(insensitive, types).evaluate([resource]).passed
