# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Terraform resource, provider and module data models."""

from pydantic import BaseModel, ConfigDict, Field

from .enums import TagOrigin


class TagSource(BaseModel):
    """Provenance of one resolved tag."""

    origin: TagOrigin = Field(..., description="Where the tag value was found")
    value: str = Field(..., description="Resolved tag value")


class Resource(BaseModel):
    """Represents a taggable Terraform resource declaration."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "aws_s3_bucket",
                "name": "logs",
                "tags": {"Environment": "prod"},
                "path": "main.tf",
                "tag_sources": {},
            }
        }
    )

    type: str = Field(..., description="Terraform resource type (e.g., aws_s3_bucket)")
    name: str = Field(..., description="Resource name local to its file or module")
    tags: dict[str, str] = Field(
        default_factory=dict, description="Tags declared directly on the resource"
    )
    path: str = Field(..., description="File or plan the resource was read from")
    tag_sources: dict[str, TagSource] = Field(
        default_factory=dict, description="Provenance for every resolved tag key"
    )

    @property
    def provider_family(self) -> str:
        """Provider name implied by the type prefix (aws_s3_bucket -> aws)."""
        return self.type.split("_", 1)[0]


class ModuleResource(Resource):
    """A resource created inside a module call."""

    module_path: str = Field(..., description="Module address (e.g., module.vpc.module.subnets)")
    module_name: str = Field(..., description="First segment of the module address")
    module_source: str = Field("unknown", description="Module source, with @version if pinned")


class ProviderConfig(BaseModel):
    """Default tags or labels declared on one provider block."""

    name: str = Field(..., description="Provider name (e.g., aws, google-beta, azapi)")
    default_tags: dict[str, str] = Field(
        default_factory=dict, description="Default tags/labels applied by this provider"
    )
    path: str = Field(..., description="File the provider block was declared in")
    alias: str | None = Field(None, description="Provider alias, if the block declares one")


class ModuleCall(BaseModel):
    """A module block and the tags passed to it."""

    name: str = Field(..., description="Module call name")
    source: str | None = Field(None, description="Value of the source argument")
    version: str | None = Field(None, description="Value of the version argument")
    tags: dict[str, str] = Field(default_factory=dict, description="Tags passed to the module")
    path: str = Field(..., description="File the module block was declared in")

    @property
    def qualified_source(self) -> str:
        if not self.source:
            return "unknown"
        if self.version:
            return f"{self.source}@{self.version}"
        return self.source
