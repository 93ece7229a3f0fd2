# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Service for extracting resources, provider defaults and module calls."""

import logging
from pathlib import Path
from typing import Any, Iterable

from ..models import (
    ExtractionResult,
    ModuleCall,
    ModuleResource,
    ProviderConfig,
    Resource,
    TagViolation,
)
from ..utils import block_scanner
from ..utils.plan_reader import (
    extract_plan_tags,
    get_module_source,
    iter_planned_resources,
    load_plan,
    module_name_from_address,
)
from ..utils.resource_type_config import ResourceTypeConfig, get_resource_type_config

logger = logging.getLogger(__name__)

TERRAFORM_FILE_PATTERN = "*.tf"
DEFAULT_PLAN_PATH = "plan.json"
MODULE_RESOURCE_TYPE = "module"


class ExtractionService:
    """
    Service for reading Terraform inputs into resource models.

    Source files are read with the best-effort block scanner; plan documents
    are read from their attribute trees. Neither path raises on malformed
    content: an unreadable input becomes a synthetic error violation in the
    result and the remaining inputs are still processed.
    """

    def __init__(self, resource_types: ResourceTypeConfig | None = None):
        self.resource_types = resource_types or get_resource_type_config()

    def parse_content(self, content: str, path: str) -> ExtractionResult:
        """
        Extract everything of interest from one file's text.

        A module call that declares tags is also returned as a resource of
        type "module" so its own tags are checked against the policy.

        Args:
            content: Terraform source text
            path: Path recorded on every extracted model

        Returns:
            ExtractionResult with resources, providers and module calls
        """
        result = ExtractionResult()
        scanned = block_scanner.scan(content)

        for block in block_scanner.iter_blocks(scanned, ("resource", "module", "provider")):
            if block.kind == "resource":
                resource = self._resource_from_block(block, path)
                if resource is not None:
                    result.resources.append(resource)
            elif block.kind == "module":
                call = self._module_call_from_block(block, path)
                if call is not None:
                    result.module_calls.append(call)
                    if call.tags:
                        result.resources.append(
                            Resource(
                                type=MODULE_RESOURCE_TYPE, name=call.name, tags=call.tags, path=path
                            )
                        )
            else:
                provider = self._provider_from_block(block, path)
                if provider is not None:
                    result.providers.append(provider)

        return result

    def _resource_from_block(self, block: block_scanner.Block, path: str) -> Resource | None:
        if len(block.labels) < 2:
            logger.debug(f"Skipping resource block without type and name in {path}")
            return None
        resource_type, resource_name = block.labels[0], block.labels[1]
        if not self.resource_types.is_taggable(resource_type):
            logger.debug(f"Skipping non-taggable resource {resource_type}.{resource_name}")
            return None

        tags = block_scanner.extract_tags(
            block,
            self.resource_types.get_tag_attribute(resource_type),
            self.resource_types.get_dialect(resource_type),
        )
        return Resource(type=resource_type, name=resource_name, tags=tags, path=path)

    def _module_call_from_block(self, block: block_scanner.Block, path: str) -> ModuleCall | None:
        if not block.labels:
            return None
        return ModuleCall(
            name=block.labels[0],
            source=block_scanner.find_string_attribute(block.body, "source"),
            version=block_scanner.find_string_attribute(block.body, "version"),
            tags=block_scanner.extract_tags(block),
            path=path,
        )

    def _provider_from_block(self, block: block_scanner.Block, path: str) -> ProviderConfig | None:
        if not block.labels:
            return None
        defaults = block_scanner.extract_provider_defaults(block)
        if not defaults:
            return None
        name = block.labels[0]
        logger.debug(f"Found default tags for provider {name} in {path}: {defaults}")
        return ProviderConfig(
            name=name,
            default_tags=defaults,
            path=path,
            alias=block_scanner.find_string_attribute(block.body, "alias"),
        )

    def parse_file(self, path: str | Path) -> ExtractionResult:
        """Read and extract one file. An unreadable file yields an error violation."""
        file_path = str(path)
        logger.info(f"Analyzing file: {file_path}")
        try:
            content = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Error reading file {file_path}: {e}")
            return ExtractionResult(
                errors=[TagViolation.error(file_path, f"Error reading file: {e}")]
            )
        return self.parse_content(content, file_path)

    def parse_files(self, files: Iterable[tuple[str, str]]) -> ExtractionResult:
        """Extract from (path, content) pairs, in the order given."""
        result = ExtractionResult()
        for path, content in files:
            result.extend(self.parse_content(content, path))
        return result

    def find_terraform_files(self, directory: str | Path) -> list[Path]:
        """List *.tf files directly inside a directory, sorted by path."""
        return sorted(p for p in Path(directory).glob(TERRAFORM_FILE_PATTERN) if p.is_file())

    def parse_directory(self, directory: str | Path) -> ExtractionResult:
        """Extract from every *.tf file in a directory (not recursive)."""
        if not Path(directory).is_dir():
            message = f"Error finding Terraform files: {directory} is not a directory"
            logger.warning(message)
            return ExtractionResult(errors=[TagViolation.error(str(directory), message)])

        files = self.find_terraform_files(directory)
        logger.info(f"Found {len(files)} Terraform files to analyze")

        result = ExtractionResult()
        for file in files:
            result.extend(self.parse_file(file))

        logger.info(f"Found {len(result.resources)} taggable resources")
        logger.info(f"Found {len(result.providers)} provider configurations with default tags")
        return result

    def parse_plan(
        self, plan: str | Path | dict[str, Any], plan_path: str | None = None
    ) -> ExtractionResult:
        """
        Extract resources from a `terraform show -json` plan.

        Args:
            plan: Path to the plan file, or the already-loaded document
            plan_path: Path recorded on resources when a document is given

        Returns:
            ExtractionResult with direct resources and module resources
        """
        if isinstance(plan, dict):
            document = plan
            path = plan_path or DEFAULT_PLAN_PATH
        else:
            path = str(plan)
            logger.info(f"Analyzing Terraform plan: {path}")
            try:
                document = load_plan(plan)
            except (OSError, ValueError) as e:
                logger.warning(f"Error parsing Terraform plan {path}: {e}")
                return ExtractionResult(
                    errors=[TagViolation.error(path, f"Error parsing Terraform plan: {e}")]
                )

        result = ExtractionResult()
        for planned in iter_planned_resources(document):
            if not self.resource_types.is_taggable(planned.type):
                continue
            tags = extract_plan_tags(planned.after)
            if planned.module_address:
                module_name = module_name_from_address(planned.module_address)
                result.module_resources.append(
                    ModuleResource(
                        type=planned.type,
                        name=planned.name,
                        tags=tags,
                        path=path,
                        module_path=planned.module_address,
                        module_name=module_name,
                        module_source=get_module_source(document, module_name),
                    )
                )
            else:
                result.resources.append(
                    Resource(type=planned.type, name=planned.name, tags=tags, path=path)
                )

        logger.info(
            f"Found {len(result.resources)} taggable resources and "
            f"{len(result.module_resources)} module resources in plan"
        )
        return result
