# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Extraction output models."""

from pydantic import BaseModel, Field

from .resource import ModuleCall, ModuleResource, ProviderConfig, Resource
from .violations import TagViolation


class ExtractionResult(BaseModel):
    """Everything read from a set of Terraform files or one plan document."""

    resources: list[Resource] = Field(
        default_factory=list, description="Taggable resources declared directly"
    )
    module_resources: list[ModuleResource] = Field(
        default_factory=list, description="Resources created inside module calls (plans only)"
    )
    providers: list[ProviderConfig] = Field(
        default_factory=list, description="Provider blocks declaring default tags or labels"
    )
    module_calls: list[ModuleCall] = Field(
        default_factory=list, description="Module blocks and the tags passed to them"
    )
    errors: list[TagViolation] = Field(
        default_factory=list, description="Synthetic error violations for unreadable inputs"
    )

    def extend(self, other: "ExtractionResult") -> None:
        self.resources.extend(other.resources)
        self.module_resources.extend(other.module_resources)
        self.providers.extend(other.providers)
        self.module_calls.extend(other.module_calls)
        self.errors.extend(other.errors)
