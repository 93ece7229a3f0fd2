# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""
Tag resolution: provider defaults and module inheritance.

Resolution records, for every tag key a resource ends up with, where the
value came from. Sources are applied in a fixed order and the first writer
wins:

1. Tags declared on the resource itself
2. Default tags/labels of the matching provider block
3. Tags passed to the module call that created the resource

Provider defaults only live in tag_sources. Module call tags are also copied
into the resource's own tags.
"""

import logging
from pathlib import Path
from typing import Iterable

from ..models import ModuleCall, ModuleResource, ProviderConfig, Resource, TagOrigin, TagSource
from .extraction_service import ExtractionService

logger = logging.getLogger(__name__)

PROVIDER_SCOPE_FILE = "file"
PROVIDER_SCOPE_DIRECTORY = "directory"

# Provider names that share a resource type prefix
PROVIDER_ALIASES = {
    "google": ("google", "google-beta"),
}


class ModuleTagInheritance:
    """
    Table of tags passed to module calls, keyed by module name.

    Only the call name is used as key, so two module calls with the same name
    (in different files, or at different nesting depths) collide and the one
    loaded last wins.
    """

    def __init__(self):
        self._module_tags: dict[str, dict[str, str]] = {}

    def add_module_calls(self, module_calls: Iterable[ModuleCall]) -> None:
        for call in module_calls:
            self._module_tags[call.name] = dict(call.tags)
            logger.debug(f"Loaded tags for module {call.name}: {call.tags}")

    def load_module_tags(self, terraform_dir: str | Path) -> None:
        """Read module calls from every *.tf file in a directory."""
        extraction = ExtractionService().parse_directory(terraform_dir)
        for error in extraction.errors:
            logger.debug(f"Skipping file {error.resource_path}: {error.missing_tags[0]}")
        self.add_module_calls(extraction.module_calls)

    def get_module_tags(self, module_name: str) -> dict[str, str]:
        return dict(self._module_tags.get(module_name, {}))

    @property
    def module_names(self) -> list[str]:
        return list(self._module_tags)

    def inherit_tags(self, resource: ModuleResource) -> None:
        """Fill in tags from the owning module call, never overwriting."""
        for key, value in self._module_tags.get(resource.module_name, {}).items():
            if key in resource.tag_sources:
                continue
            resource.tag_sources[key] = TagSource(origin=TagOrigin.MODULE_CALL, value=value)
            resource.tags[key] = value
            logger.debug(
                f"Resource {resource.type} '{resource.name}' inherits tag '{key}' "
                f"from module {resource.module_name}"
            )


class TagResolver:
    """
    Resolves the effective tags and their provenance for resources.

    Provider blocks are matched to a resource by declaration scope (the file,
    or its directory) and provider name. When several provider blocks share a
    scope and name, the un-aliased one is used; among aliased blocks only,
    the last one declared is used.
    """

    def __init__(
        self,
        providers: Iterable[ProviderConfig] = (),
        provider_scope: str = PROVIDER_SCOPE_FILE,
        module_inheritance: ModuleTagInheritance | None = None,
    ):
        self.provider_scope = provider_scope
        self.module_inheritance = module_inheritance
        self._providers: dict[tuple[str, str], ProviderConfig] = {}
        for provider in providers:
            key = (self._scope_key(provider.path), provider.name)
            existing = self._providers.get(key)
            if existing is not None and existing.alias is None and provider.alias is not None:
                continue
            self._providers[key] = provider

    def _scope_key(self, path: str) -> str:
        if self.provider_scope == PROVIDER_SCOPE_DIRECTORY:
            return str(Path(path).parent)
        return path

    def provider_for(self, resource: Resource) -> ProviderConfig | None:
        """Find the provider block supplying defaults to a resource."""
        scope = self._scope_key(resource.path)
        family = resource.provider_family
        for name in PROVIDER_ALIASES.get(family, (family,)):
            provider = self._providers.get((scope, name))
            if provider is not None:
                return provider
        return None

    def default_tags_for(self, resource: Resource) -> dict[str, str]:
        provider = self.provider_for(resource)
        return dict(provider.default_tags) if provider else {}

    def resolve(self, resource: Resource) -> Resource:
        """
        Return a copy of the resource with tag_sources populated.

        The input is not modified, so resolving twice gives the same result.
        """
        resolved = resource.model_copy(deep=True)
        resolved.tag_sources = {}

        for key, value in resolved.tags.items():
            resolved.tag_sources[key] = TagSource(origin=TagOrigin.RESOURCE, value=value)

        for key, value in self.default_tags_for(resolved).items():
            if key not in resolved.tag_sources:
                resolved.tag_sources[key] = TagSource(origin=TagOrigin.PROVIDER_DEFAULT, value=value)
                logger.debug(
                    f"Resource {resolved.type} '{resolved.name}' inherits tag '{key}' "
                    f"from provider default tags"
                )

        if self.module_inheritance is not None and isinstance(resolved, ModuleResource):
            self.module_inheritance.inherit_tags(resolved)

        return resolved

    def resolve_all(self, resources: Iterable[Resource]) -> list[Resource]:
        return [self.resolve(resource) for resource in resources]
