# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

"""Policy service for loading required-tag policies and exemptions."""

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..models import ResourceExemption, TagPolicy
from ..utils.remote_fetch import DEFAULT_TIMEOUT, RemoteFetchError, fetch_remote, is_remote

logger = logging.getLogger(__name__)

JSON_EXTENSIONS = (".json",)
YAML_EXTENSIONS = (".yaml", ".yml")


class PolicyValidationError(Exception):
    """Raised when policy configuration is invalid."""

    pass


class PolicyNotFoundError(Exception):
    """Raised when policy file is not found."""

    pass


class PolicyService:
    """
    Service for loading and managing required-tag policies.

    This service handles:
    - Loading policy from local JSON/YAML files or remote locations
    - Validating policy structure (and compiling tag patterns) on load
    - Loading a separate exemptions file
    - Caching loaded policy for retrieval
    """

    def __init__(
        self,
        policy_path: str | Path | None = None,
        remote_timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the PolicyService.

        Args:
            policy_path: Local path or remote location of the policy file
            remote_timeout: Timeout in seconds for remote retrieval
        """
        self._policy: TagPolicy | None = None
        self._policy_path = str(policy_path) if policy_path else None
        self._remote_timeout = remote_timeout

    def _read_document(self, location: str) -> tuple[str, str]:
        """Return (content, extension) for a local or remote location."""
        if is_remote(location):
            try:
                content = fetch_remote(location, self._remote_timeout)
            except RemoteFetchError as e:
                raise PolicyNotFoundError(f"Failed to fetch remote config {location}: {e}") from e
            extension = Path(location.split("?", 1)[0]).suffix.lower()
            return content, extension

        path = Path(location)
        if not path.exists():
            raise PolicyNotFoundError(f"Policy file not found: {path}")
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise PolicyValidationError(f"Error reading policy file {path}: {e}") from e
        return content, path.suffix.lower()

    def _parse_document(self, location: str) -> dict[str, Any]:
        content, extension = self._read_document(location)
        try:
            if extension in JSON_EXTENSIONS:
                data = json.loads(content)
            elif extension in YAML_EXTENSIONS:
                data = yaml.safe_load(content)
            else:
                raise PolicyValidationError(
                    f"Unsupported config file format {extension or '(none)'}: "
                    "must be .json, .yaml, or .yml"
                )
        except json.JSONDecodeError as e:
            raise PolicyValidationError(f"Invalid JSON in policy file {location}: {e}") from e
        except yaml.YAMLError as e:
            raise PolicyValidationError(f"Invalid YAML in policy file {location}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise PolicyValidationError(f"Policy file {location} must contain an object")
        return data

    def load_policy(self, policy_path: str | Path | None = None) -> TagPolicy:
        """
        Load a required-tag policy.

        Args:
            policy_path: Optional path or remote location. If None, uses instance path.

        Returns:
            TagPolicy: The loaded and validated policy

        Raises:
            PolicyNotFoundError: If the policy file doesn't exist or cannot be fetched
            PolicyValidationError: If the policy structure is invalid or a pattern
                does not compile
        """
        location = str(policy_path) if policy_path else self._policy_path
        if not location:
            raise PolicyNotFoundError("No policy file configured")

        policy_data = self._parse_document(location)
        try:
            self._policy = TagPolicy(**policy_data)
        except ValidationError as e:
            raise PolicyValidationError(f"Invalid policy structure in {location}: {e}") from e

        self._policy_path = location
        logger.info(
            f"Loaded policy from {location}: {len(self._policy.required_tags)} required tags, "
            f"{len(self._policy.exemptions)} exemptions"
        )
        for name, requirement in self._policy.required_tags.items():
            if requirement.pattern:
                logger.debug(f"Compiled pattern for tag {name}: {requirement.pattern}")
        return self._policy

    def load_exemptions(self, exemptions_path: str | Path) -> list[ResourceExemption]:
        """
        Load exemptions from a standalone file and attach them to the policy.

        The file holds an object with an `exemptions` list. Its entries replace
        any exemptions declared in the policy file itself.

        Raises:
            PolicyNotFoundError: If the file doesn't exist
            PolicyValidationError: If an exemption is malformed
        """
        location = str(exemptions_path)
        data = self._parse_document(location)
        try:
            exemptions = [ResourceExemption(**item) for item in data.get("exemptions") or []]
        except (TypeError, ValidationError) as e:
            raise PolicyValidationError(f"Invalid exemptions in {location}: {e}") from e

        if self._policy is not None:
            self._policy = self._policy.model_copy(update={"exemptions": exemptions})
        logger.info(f"Loaded {len(exemptions)} exemptions from {location}")
        return exemptions

    def get_policy(self) -> TagPolicy:
        """
        Get the currently loaded policy, loading it from the instance path if needed.

        Raises:
            PolicyNotFoundError: If no policy is loaded and no file is configured
            PolicyValidationError: If policy validation fails
        """
        if self._policy is None:
            self.load_policy()
        return self._policy

    def set_ignore_tag_case(self, ignore_case: bool) -> TagPolicy:
        """Override the policy's case rule (command-line flag wins over file)."""
        policy = self.get_policy()
        self._policy = policy.model_copy(update={"ignore_tag_case": ignore_case})
        return self._policy

    def validate_policy_structure(self, policy_data: dict[str, Any]) -> tuple[bool, str | None]:
        """
        Validate policy structure without loading it.

        Returns:
            Tuple of (is_valid, error_message)
        """
        try:
            TagPolicy(**policy_data)
            return True, None
        except ValidationError as e:
            return False, str(e)
