"""
Unit tests for tag resolution.

Tests provider default matching, module inheritance and source precedence.
"""

from tag_compliance.models import ModuleCall, ModuleResource, ProviderConfig, Resource, TagOrigin
from tag_compliance.services import ModuleTagInheritance, TagResolver


def _module_resource(**overrides) -> ModuleResource:
    values = {
        "type": "aws_vpc",
        "name": "this[0]",
        "path": "plan.json",
        "module_path": "module.vpc",
        "module_name": "vpc",
    }
    values.update(overrides)
    return ModuleResource(**values)


class TestProviderDefaults:
    """Test provider default tags in resolution."""

    def test_resource_tags_take_precedence(self, aws_provider):
        resource = Resource(type="aws_vpc", name="a", tags={"Owner": "team"}, path="main.tf")
        resolved = TagResolver([aws_provider]).resolve(resource)
        assert resolved.tag_sources["Owner"].origin == TagOrigin.RESOURCE
        assert resolved.tag_sources["Owner"].value == "team"

    def test_defaults_fill_missing_keys(self, aws_provider, sample_resource):
        resolved = TagResolver([aws_provider]).resolve(sample_resource)
        assert resolved.tag_sources["Environment"].origin == TagOrigin.RESOURCE
        assert resolved.tag_sources["Owner"].origin == TagOrigin.PROVIDER_DEFAULT
        assert resolved.tag_sources["Owner"].value == "platform"
        assert "Owner" not in resolved.tags

    def test_provider_name_must_match_family(self, aws_provider):
        resource = Resource(type="azurerm_resource_group", name="rg", path="main.tf")
        assert TagResolver([aws_provider]).resolve(resource).tag_sources == {}

    def test_file_scope(self, aws_provider):
        resource = Resource(type="aws_vpc", name="a", path="network.tf")
        assert TagResolver([aws_provider]).resolve(resource).tag_sources == {}

    def test_directory_scope(self):
        provider = ProviderConfig(name="aws", default_tags={"Owner": "p"}, path="infra/providers.tf")
        resource = Resource(type="aws_vpc", name="a", path="infra/network.tf")
        other = Resource(type="aws_vpc", name="b", path="other/network.tf")
        resolver = TagResolver([provider], provider_scope="directory")
        assert "Owner" in resolver.resolve(resource).tag_sources
        assert resolver.resolve(other).tag_sources == {}

    def test_google_beta_serves_google_resources(self):
        provider = ProviderConfig(name="google-beta", default_tags={"team": "data"}, path="main.tf")
        resource = Resource(type="google_storage_bucket", name="b", path="main.tf")
        resolved = TagResolver([provider]).resolve(resource)
        assert resolved.tag_sources["team"].value == "data"

    def test_unaliased_provider_wins(self):
        providers = [
            ProviderConfig(name="aws", default_tags={"Owner": "default"}, path="main.tf"),
            ProviderConfig(name="aws", default_tags={"Owner": "west"}, path="main.tf", alias="west"),
        ]
        resource = Resource(type="aws_vpc", name="a", path="main.tf")
        resolved = TagResolver(providers).resolve(resource)
        assert resolved.tag_sources["Owner"].value == "default"

    def test_last_aliased_provider_wins(self):
        providers = [
            ProviderConfig(name="aws", default_tags={"Owner": "east"}, path="main.tf", alias="east"),
            ProviderConfig(name="aws", default_tags={"Owner": "west"}, path="main.tf", alias="west"),
        ]
        resource = Resource(type="aws_vpc", name="a", path="main.tf")
        assert TagResolver(providers).resolve(resource).tag_sources["Owner"].value == "west"

    def test_resolve_is_idempotent(self, aws_provider, sample_resource):
        resolver = TagResolver([aws_provider])
        once = resolver.resolve(sample_resource)
        twice = resolver.resolve(once)
        assert once == twice
        assert sample_resource.tag_sources == {}


class TestModuleInheritance:
    """Test tags inherited from module calls."""

    def test_inherits_missing_keys_only(self):
        inheritance = ModuleTagInheritance()
        inheritance.add_module_calls(
            [ModuleCall(name="vpc", tags={"Team": "network", "Name": "mod"}, path="main.tf")]
        )
        resolved = TagResolver(module_inheritance=inheritance).resolve(
            _module_resource(tags={"Name": "own"})
        )
        assert resolved.tags == {"Name": "own", "Team": "network"}
        assert resolved.tag_sources["Name"].origin == TagOrigin.RESOURCE
        assert resolved.tag_sources["Team"].origin == TagOrigin.MODULE_CALL

    def test_provider_defaults_before_module_tags(self, aws_provider):
        inheritance = ModuleTagInheritance()
        inheritance.add_module_calls(
            [ModuleCall(name="vpc", tags={"Owner": "module"}, path="main.tf")]
        )
        resource = _module_resource(path="main.tf")
        resolved = TagResolver([aws_provider], module_inheritance=inheritance).resolve(resource)
        assert resolved.tag_sources["Owner"].origin == TagOrigin.PROVIDER_DEFAULT
        assert resolved.tag_sources["Owner"].value == "platform"

    def test_plain_resources_not_affected(self):
        inheritance = ModuleTagInheritance()
        inheritance.add_module_calls([ModuleCall(name="vpc", tags={"Team": "x"}, path="main.tf")])
        resource = Resource(type="aws_vpc", name="vpc", path="main.tf")
        assert TagResolver(module_inheritance=inheritance).resolve(resource).tags == {}

    def test_same_name_calls_collide(self):
        inheritance = ModuleTagInheritance()
        inheritance.add_module_calls(
            [
                ModuleCall(name="vpc", tags={"Team": "first"}, path="a.tf"),
                ModuleCall(name="vpc", tags={"Team": "second"}, path="b.tf"),
            ]
        )
        assert inheritance.module_names == ["vpc"]
        assert inheritance.get_module_tags("vpc") == {"Team": "second"}

    def test_unknown_module(self):
        assert ModuleTagInheritance().get_module_tags("missing") == {}

    def test_load_module_tags(self, terraform_dir):
        directory = terraform_dir(
            {
                "main.tf": (
                    'module "app" {\n'
                    '  source = "./modules/app"\n'
                    '  tags = {\n    Team = "apps"\n  }\n'
                    "}\n"
                )
            }
        )
        inheritance = ModuleTagInheritance()
        inheritance.load_module_tags(directory)
        assert inheritance.get_module_tags("app") == {"Team": "apps"}
