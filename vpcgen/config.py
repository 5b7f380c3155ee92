"""Configuration management for VPC generation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from vpcgen.errors import InvalidZoneCountError
from vpcgen.log_config import get_logger
from vpcgen.naming import zone_slug

logger = get_logger(__name__)


@dataclass(frozen=True)
class VpcSpec:
    """Declarative description of the VPC to build.

    A VPC spec is read-only once constructed. ``zone_names`` is normalized to a
    tuple and ``tags`` to a plain dict copy so later caller mutation cannot
    leak into a build.
    """

    base_cidr: str
    zone_names: tuple[str, ...]
    tags: Mapping[str, str] = field(default_factory=dict)
    create_private_zone: bool = False
    private_zone_name: str | None = None
    enable_s3_endpoint: bool = False
    enable_dynamodb_endpoint: bool = False

    def __post_init__(self) -> None:
        """Normalize sequence and mapping fields."""
        if isinstance(self.zone_names, str):
            raise ValueError("'zone_names' must be a list of zone identifiers")
        zone_names = tuple(self.zone_names)
        invalid = [z for z in zone_names if not isinstance(z, str)]
        if invalid:
            raise ValueError(f"availability zone names must be strings, got {invalid}")
        object.__setattr__(self, "zone_names", zone_names)
        object.__setattr__(
            self, "tags", {str(k): str(v) for k, v in (self.tags or {}).items()}
        )

    @property
    def zone_count(self) -> int:
        return len(self.zone_names)

    @property
    def endpoints_enabled(self) -> bool:
        return self.enable_s3_endpoint or self.enable_dynamodb_endpoint

    def validate(self) -> None:
        """Validate the VPC spec before allocation.

        Raises:
            InvalidZoneCountError: If no zones are given.
            ValueError: If the VPC spec is otherwise inconsistent.
        """
        if not self.base_cidr:
            raise ValueError("'base_cidr' is required")
        if not self.zone_names:
            raise InvalidZoneCountError("at least one availability zone is required")
        if any(not z.strip() for z in self.zone_names):
            raise ValueError("availability zone names must be non-empty")
        duplicates = sorted({z for z in self.zone_names if self.zone_names.count(z) > 1})
        if duplicates:
            raise ValueError(f"duplicate availability zone names: {duplicates}")
        slugs: dict[str, str] = {}
        for zone in self.zone_names:
            slug = zone_slug(zone)
            if not slug:
                raise ValueError(
                    f"availability zone name {zone!r} has no usable characters"
                )
            if slug in slugs:
                raise ValueError(
                    f"availability zones {slugs[slug]!r} and {zone!r} both map to "
                    f"resource name suffix '{slug}'"
                )
            slugs[slug] = zone
        if self.create_private_zone and not self.private_zone_name:
            raise ValueError(
                "'private_zone_name' is required when 'create_private_zone' is set"
            )


@dataclass
class ExecutionConfig:
    """Settings for running a resource graph against a provisioner."""

    timeout_s: float | None = 600.0  # Overall wait for outputs; None waits forever
    max_workers: int = 8  # Worker threads for the dry-run provisioner


@dataclass
class VpcGenConfig:
    """Complete configuration for one VPC component.

    Aggregates the component name, target region, the VPC spec and execution
    settings.
    """

    name: str
    vpc: VpcSpec
    region: str | None = None
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    _source_path: Path | None = None

    @classmethod
    def from_yaml(cls, config_path: Path) -> VpcGenConfig:
        """Load configuration from YAML file.

        Args:
            config_path: Path to YAML configuration file.

        Returns:
            Parsed configuration object.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            yaml.YAMLError: If YAML is invalid.
            ValueError: If configuration is invalid.
        """
        logger.info(f"Loading configuration from: {config_path}")

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r") as f:
                raw_config = yaml.safe_load(f)

        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in configuration: {e}")
            raise

        if not isinstance(raw_config, dict):
            raise ValueError("Configuration root must be a mapping")

        cfg = cls._from_dict(raw_config)
        cfg._source_path = Path(config_path)
        return cfg

    @classmethod
    def _from_dict(cls, config_dict: dict[str, Any]) -> VpcGenConfig:
        """Create configuration from dictionary.

        Args:
            config_dict: Raw configuration dictionary.

        Returns:
            Parsed configuration object.
        """
        if "name" not in config_dict:
            raise ValueError("Missing required 'name' configuration entry")
        if "vpc" not in config_dict:
            raise ValueError("Missing required 'vpc' configuration section")

        name = str(config_dict["name"]).strip()
        if not name:
            raise ValueError("'name' must be a non-empty string")

        vpc_dict = config_dict["vpc"]
        if not isinstance(vpc_dict, dict):
            raise ValueError("'vpc' configuration section must be a dictionary")
        if "base_cidr" not in vpc_dict:
            raise ValueError("Missing required 'vpc.base_cidr' entry")
        if "availability_zone_names" not in vpc_dict:
            raise ValueError("Missing required 'vpc.availability_zone_names' entry")

        zones = vpc_dict["availability_zone_names"]
        if not isinstance(zones, list) or not all(isinstance(z, str) for z in zones):
            raise ValueError("'vpc.availability_zone_names' must be a list of strings")

        tags = vpc_dict.get("tags") or {}
        if not isinstance(tags, dict):
            raise ValueError("'vpc.tags' must be a dictionary")

        # 'zone_name' is accepted as an alias for the private zone name
        private_zone_name = vpc_dict.get(
            "private_zone_name", vpc_dict.get("zone_name")
        )

        vpc = VpcSpec(
            base_cidr=str(vpc_dict["base_cidr"]),
            zone_names=tuple(zones),
            tags=tags,
            create_private_zone=bool(vpc_dict.get("create_private_zone", False)),
            private_zone_name=(
                str(private_zone_name) if private_zone_name is not None else None
            ),
            enable_s3_endpoint=bool(vpc_dict.get("enable_s3_endpoint", False)),
            enable_dynamodb_endpoint=bool(
                vpc_dict.get("enable_dynamodb_endpoint", False)
            ),
        )

        execution_dict = config_dict.get("execution", {}) or {}
        if not isinstance(execution_dict, dict):
            raise ValueError("'execution' configuration section must be a dictionary")
        execution = ExecutionConfig(**execution_dict)

        region = config_dict.get("region")
        return cls(
            name=name,
            vpc=vpc,
            region=str(region) if region is not None else None,
            execution=execution,
        )

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises:
            ValueError: If configuration is invalid.
        """
        logger.info("Validating configuration")

        self.vpc.validate()

        if self.vpc.endpoints_enabled and not self.region:
            raise ValueError("'region' is required when VPC endpoints are enabled")
        if self.execution.timeout_s is not None and self.execution.timeout_s <= 0:
            raise ValueError("execution.timeout_s must be positive")
        if self.execution.max_workers <= 0:
            raise ValueError("execution.max_workers must be positive")

        logger.info("Configuration validation passed")

    def summary(self) -> str:
        """Generate configuration summary string.

        Returns:
            Human-readable configuration summary.
        """
        lines = [
            "VPC GENERATOR CONFIGURATION",
            "=" * 60,
            "",
            "COMPONENT",
            "-" * 30,
            f"   Name: {self.name}",
            f"   Region: {self.region or '(unset)'}",
            "",
            "VPC",
            "-" * 30,
            f"   Base CIDR: {self.vpc.base_cidr}",
            f"   Availability Zones: {', '.join(self.vpc.zone_names)}",
            f"   Private Zone: {self.vpc.private_zone_name if self.vpc.create_private_zone else 'disabled'}",
            f"   S3 Endpoint: {self.vpc.enable_s3_endpoint}",
            f"   DynamoDB Endpoint: {self.vpc.enable_dynamodb_endpoint}",
            f"   Tags: {dict(self.vpc.tags)}",
            "",
            "EXECUTION",
            "-" * 30,
            f"   Timeout: {self.execution.timeout_s}s",
            f"   Max Workers: {self.execution.max_workers}",
            "",
            "=" * 60,
        ]

        return "\n".join(lines)
