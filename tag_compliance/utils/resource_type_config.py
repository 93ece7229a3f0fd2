# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""
Capability tables for Terraform resource types.

Answers two questions for a resource type: does it support tags/labels, and
which attribute shape does it use for them. The tables are embedded defaults
that can be replaced by an external JSON file for easy maintenance.
"""

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from ..models.enums import TagDialect

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "RESOURCE_TYPES_CONFIG_PATH"


class ResourceTypeConfig:
    """
    Configuration for Terraform resource types.

    Manages three tables:
    1. Taggable resources: declarations checked for required tags
    2. Excluded resources: taggable on paper, but the provider's tag schema is
       known to be broken; extracted and counted, never evaluated
    3. Dialects: which tag attribute name and shape a type prefix uses
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize resource type configuration.

        Args:
            config_path: Path to JSON config file. If None, uses the
                        RESOURCE_TYPES_CONFIG_PATH environment variable, and the
                        embedded defaults when that is unset too.
        """
        self.config_path = config_path or os.environ.get(CONFIG_PATH_ENV)
        self._config: dict = {}
        self._taggable: frozenset[str] = frozenset()
        self._excluded: frozenset[str] = frozenset()
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from JSON file, falling back to defaults."""
        self._config = self._get_default_config()

        if self.config_path:
            path = Path(self.config_path)
            try:
                with open(path, "r", encoding="utf-8") as f:
                    self._config = json.load(f)
                logger.info(f"Loaded resource type config from {path}")
            except FileNotFoundError:
                logger.warning(f"Resource type config not found at {path}, using defaults")
            except json.JSONDecodeError as e:
                logger.error(f"Invalid JSON in resource type config: {e}")

        self._taggable = frozenset(self._flatten("taggable_resources"))
        self._excluded = frozenset(self._flatten("excluded_resources"))

    def _flatten(self, section: str) -> list[str]:
        types = []
        for category, names in self._config.get(section, {}).items():
            if category.startswith("_"):  # Skip metadata fields
                continue
            if isinstance(names, list):
                types.extend(names)
        return types

    def _get_default_config(self) -> dict:
        """Return the embedded capability tables."""
        return {
            "taggable_resources": {
                "aws": [
                    "aws_instance", "aws_launch_template", "aws_ebs_volume", "aws_ebs_snapshot",
                    "aws_eip", "aws_nat_gateway", "aws_vpc", "aws_subnet", "aws_security_group",
                    "aws_internet_gateway", "aws_route_table", "aws_network_interface",
                    "aws_s3_bucket", "aws_efs_file_system", "aws_fsx_lustre_file_system",
                    "aws_db_instance", "aws_rds_cluster", "aws_dynamodb_table",
                    "aws_elasticache_cluster", "aws_elasticache_replication_group",
                    "aws_redshift_cluster", "aws_lambda_function", "aws_ecs_cluster",
                    "aws_ecs_service", "aws_ecs_task_definition", "aws_eks_cluster",
                    "aws_eks_node_group", "aws_lb", "aws_lb_target_group", "aws_kms_key",
                    "aws_secretsmanager_secret", "aws_sns_topic", "aws_sqs_queue",
                    "aws_cloudwatch_log_group", "aws_cloudwatch_metric_alarm", "aws_iam_role",
                    "aws_iam_policy", "aws_iam_user", "aws_ecr_repository", "aws_kinesis_stream",
                    "aws_glue_job", "aws_sagemaker_endpoint", "aws_sagemaker_notebook_instance",
                    "aws_cloudfront_distribution", "aws_route53_zone", "aws_sfn_state_machine",
                    "aws_api_gateway_rest_api", "aws_codebuild_project", "aws_opensearch_domain",
                    "aws_emr_cluster", "aws_autoscaling_group",
                ],
                "awscc": [
                    "awscc_s3_bucket", "awscc_ec2_instance", "awscc_ec2_vpc", "awscc_ec2_subnet",
                    "awscc_lambda_function", "awscc_dynamodb_table", "awscc_ecs_cluster",
                    "awscc_ecs_service", "awscc_eks_cluster", "awscc_kms_key", "awscc_sns_topic",
                    "awscc_sqs_queue", "awscc_logs_log_group", "awscc_iam_role",
                    "awscc_ecr_repository", "awscc_rds_db_instance",
                    "awscc_secretsmanager_secret", "awscc_kinesis_stream",
                ],
                "google": [
                    "google_compute_instance", "google_compute_disk", "google_compute_image",
                    "google_compute_snapshot", "google_compute_address",
                    "google_compute_forwarding_rule", "google_storage_bucket",
                    "google_sql_database_instance", "google_bigquery_dataset",
                    "google_bigquery_table", "google_container_cluster",
                    "google_container_node_pool", "google_cloudfunctions_function",
                    "google_cloudfunctions2_function", "google_cloud_run_service",
                    "google_cloud_run_v2_service", "google_pubsub_topic",
                    "google_pubsub_subscription", "google_redis_instance",
                    "google_spanner_instance", "google_dataproc_cluster",
                    "google_kms_crypto_key", "google_secret_manager_secret",
                    "google_artifact_registry_repository", "google_filestore_instance",
                ],
                "azure": [
                    "azurerm_resource_group", "azurerm_virtual_network", "azurerm_subnet",
                    "azurerm_network_security_group", "azurerm_public_ip",
                    "azurerm_network_interface", "azurerm_linux_virtual_machine",
                    "azurerm_windows_virtual_machine", "azurerm_managed_disk",
                    "azurerm_storage_account", "azurerm_key_vault", "azurerm_kubernetes_cluster",
                    "azurerm_mssql_server", "azurerm_mssql_database",
                    "azurerm_postgresql_flexible_server", "azurerm_cosmosdb_account",
                    "azurerm_app_service_plan", "azurerm_service_plan",
                    "azurerm_linux_web_app", "azurerm_function_app",
                    "azurerm_container_registry", "azurerm_log_analytics_workspace",
                    "azapi_resource", "azapi_update_resource",
                ],
                "alicloud": [
                    "alicloud_instance", "alicloud_reserved_instance", "alicloud_oss_bucket",
                    "alicloud_db_instance", "alicloud_mongodb_instance",
                    "alicloud_kvstore_instance", "alicloud_vpc", "alicloud_vswitch",
                    "alicloud_security_group", "alicloud_slb_load_balancer",
                    "alicloud_cs_managed_kubernetes", "alicloud_kms_key",
                ],
            },
            "excluded_resources": {
                "_comment": "Providers whose tag schema does not follow their own dialect",
                "awscc": [
                    "awscc_apigateway_rest_api", "awscc_ssm_parameter",
                    "awscc_ssm_document", "awscc_batch_compute_environment",
                    "awscc_batch_job_queue", "awscc_eks_nodegroup",
                ],
                "google": [
                    "google_compute_instance_template", "google_dataflow_job",
                ],
            },
            "dialects": {
                "awscc_": "list_of_pairs",
            },
            "tag_attributes": {
                "google_": "labels",
            },
        }

    def get_taggable_resources(self) -> list[str]:
        """Get all resource types that support tagging, sorted."""
        return sorted(self._taggable)

    def get_excluded_resources(self) -> list[str]:
        """Get resource types excluded from evaluation, sorted."""
        return sorted(self._excluded)

    def is_known_excluded(self, resource_type: str) -> bool:
        """Check if a resource type is extracted but never evaluated."""
        return resource_type in self._excluded

    def is_taggable(self, resource_type: str) -> bool:
        """
        Check if a resource type supports tagging.

        Known-excluded types also answer True so that extraction picks them up
        and statistics can count them.
        """
        if resource_type in self._excluded:
            logger.debug(f"{resource_type} is in the excluded resources list")
            return True
        return resource_type in self._taggable

    def _lookup_prefix(self, section: str, resource_type: str) -> str | None:
        for prefix, value in self._config.get(section, {}).items():
            if resource_type.startswith(prefix):
                return value
        return None

    def get_dialect(self, resource_type: str) -> TagDialect:
        """Get the tag attribute shape for a resource type."""
        dialect = self._lookup_prefix("dialects", resource_type)
        return TagDialect(dialect) if dialect else TagDialect.MAP

    def get_tag_attribute(self, resource_type: str) -> str:
        """Get the tag attribute name for a resource type (tags or labels)."""
        return self._lookup_prefix("tag_attributes", resource_type) or "tags"

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()
        # Clear cached instance
        get_resource_type_config.cache_clear()


@lru_cache(maxsize=1)
def get_resource_type_config() -> ResourceTypeConfig:
    """
    Get singleton instance of ResourceTypeConfig.

    Uses LRU cache to ensure single instance across the application.

    Returns:
        ResourceTypeConfig instance
    """
    return ResourceTypeConfig()


# Convenience functions
def is_taggable(resource_type: str) -> bool:
    return get_resource_type_config().is_taggable(resource_type)


def is_known_excluded(resource_type: str) -> bool:
    return get_resource_type_config().is_known_excluded(resource_type)
