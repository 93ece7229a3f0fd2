# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""
Helpers for reading `terraform show -json` plan documents.

Plan documents are already evaluated, so tags are read from the planned
attribute tree instead of from source text. The provider's merged view
(`effective_labels`, `tags_all`) is preferred over the user-declared one.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterator, NamedTuple

logger = logging.getLogger(__name__)

# (merged field, declared field), checked in order
TAG_FIELD_PRECEDENCE = (
    ("effective_labels", "labels"),
    ("tags_all", "tags"),
)

LOCAL_MODULE_PREFIXES = ("./", "../", "/")


class PlannedResource(NamedTuple):
    """One managed resource change read from a plan."""

    address: str
    type: str
    name: str
    module_address: str | None
    after: dict[str, Any]


def load_plan(plan_path: str | Path) -> dict[str, Any]:
    """
    Load a plan JSON document.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the content is not a JSON object
    """
    with open(plan_path, "r", encoding="utf-8") as f:
        document = json.load(f)
    if not isinstance(document, dict):
        raise ValueError("plan document must be a JSON object")
    return document


def normalize_tags(value: Any) -> dict[str, str]:
    """Normalize a map or a list of {key, value} pairs into a flat mapping."""
    tags: dict[str, str] = {}
    if isinstance(value, dict):
        for key, tag_value in value.items():
            if tag_value is None:
                continue
            tags[str(key)] = str(tag_value)
    elif isinstance(value, list):
        for item in value:
            if not isinstance(item, dict):
                continue
            pair = {str(k).lower(): v for k, v in item.items()}
            if pair.get("key") is None or pair.get("value") is None:
                continue
            tags[str(pair["key"])] = str(pair["value"])
    return tags


def extract_plan_tags(after: dict[str, Any] | None) -> dict[str, str]:
    """Extract tags from a resource's planned "after" attribute tree."""
    if not after:
        return {}
    for merged, declared in TAG_FIELD_PRECEDENCE:
        for field in (merged, declared):
            value = after.get(field)
            if value:
                logger.debug(f"Reading plan tags from {field}")
                return normalize_tags(value)
    return {}


def resource_name_from_address(address: str, resource_type: str, module_address: str | None = None) -> str:
    """
    Strip the module prefix and the type from a resource address.

    module.vpc.aws_subnet.private["a"] -> private["a"]
    """
    remainder = address
    if module_address and remainder.startswith(module_address + "."):
        remainder = remainder[len(module_address) + 1:]
    if remainder.startswith(resource_type + "."):
        return remainder[len(resource_type) + 1:]
    return address.rsplit(".", 1)[-1]


def module_name_from_address(module_address: str) -> str:
    """First module name in a module address (module.vpc.module.sub -> vpc)."""
    parts = module_address.split(".")
    if len(parts) >= 2 and parts[0] == "module":
        return parts[1].split("[", 1)[0]
    return module_address


def get_module_source(document: dict[str, Any], module_name: str) -> str:
    """Look up a root module call's source (with @version when pinned)."""
    root_module = (document.get("configuration") or {}).get("root_module") or {}
    calls = root_module.get("module_calls") or {}
    call = calls.get(module_name)
    if not call or not call.get("source"):
        return "unknown"
    version = call.get("version_constraint") or call.get("version")
    if version:
        return f"{call['source']}@{version}"
    return call["source"]


def is_external_module(source: str) -> bool:
    """Anything that is not a local path counts as an external module."""
    return not source.startswith(LOCAL_MODULE_PREFIXES)


def iter_planned_resources(document: dict[str, Any]) -> Iterator[PlannedResource]:
    """
    Yield managed resources that will exist after the plan is applied.

    Data sources and pure deletions are skipped.
    """
    for change in document.get("resource_changes") or []:
        if change.get("mode") == "data":
            continue
        details = change.get("change") or {}
        if details.get("actions") == ["delete"]:
            logger.debug(f"Skipping {change.get('address')}: planned for deletion")
            continue
        resource_type = change.get("type", "")
        address = change.get("address", "")
        module_address = change.get("module_address")
        yield PlannedResource(
            address=address,
            type=resource_type,
            name=resource_name_from_address(address, resource_type, module_address),
            module_address=module_address,
            after=details.get("after") or {},
        )
