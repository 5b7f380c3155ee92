"""Tests for configuration management."""

from pathlib import Path

import pytest
import yaml

from vpcgen.config import ExecutionConfig, VpcGenConfig, VpcSpec
from vpcgen.errors import InvalidZoneCountError


def test_config_from_yaml(temp_config_file: Path) -> None:
    """Test loading configuration from YAML file."""
    config = VpcGenConfig.from_yaml(temp_config_file)

    assert config.name == "example"
    assert config.region == "us-west-2"
    assert config.vpc.base_cidr == "10.0.0.0/16"
    assert config.vpc.zone_names == ("us-west-2a", "us-west-2b", "us-west-2c")
    assert config.vpc.tags == {"team": "network", "env": "test"}
    assert config.vpc.create_private_zone is True
    assert config.vpc.private_zone_name == "internal.example.com"
    assert config.vpc.enable_s3_endpoint is True
    assert config.vpc.enable_dynamodb_endpoint is False
    assert config.execution == ExecutionConfig(timeout_s=30, max_workers=4)
    assert config._source_path == temp_config_file

    config.validate()


def test_config_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "minimal.yml"
    config_path.write_text(
        yaml.dump(
            {
                "name": "demo",
                "vpc": {
                    "base_cidr": "172.0.0.0/24",
                    "availability_zone_names": ["a", "b", "c"],
                },
            }
        )
    )

    config = VpcGenConfig.from_yaml(config_path)

    assert config.region is None
    assert config.vpc.tags == {}
    assert config.vpc.create_private_zone is False
    assert config.execution.timeout_s == 600.0
    assert config.execution.max_workers == 8
    config.validate()


def test_zone_name_alias(sample_config: dict) -> None:
    vpc = sample_config["vpc"]
    vpc["zone_name"] = vpc.pop("private_zone_name")

    config = VpcGenConfig._from_dict(sample_config)
    assert config.vpc.private_zone_name == "internal.example.com"


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        VpcGenConfig.from_yaml(tmp_path / "missing.yml")


def test_invalid_yaml(invalid_config_file: Path) -> None:
    with pytest.raises(yaml.YAMLError):
        VpcGenConfig.from_yaml(invalid_config_file)


@pytest.mark.parametrize("section", ["name", "vpc"])
def test_missing_sections(sample_config: dict, section: str) -> None:
    del sample_config[section]
    with pytest.raises(ValueError, match=f"Missing required '{section}'"):
        VpcGenConfig._from_dict(sample_config)


@pytest.mark.parametrize("key", ["base_cidr", "availability_zone_names"])
def test_missing_vpc_entries(sample_config: dict, key: str) -> None:
    del sample_config["vpc"][key]
    with pytest.raises(ValueError, match=key):
        VpcGenConfig._from_dict(sample_config)


def test_zone_list_must_be_a_list(sample_config: dict) -> None:
    sample_config["vpc"]["availability_zone_names"] = "us-west-2a"
    with pytest.raises(ValueError, match="must be a list"):
        VpcGenConfig._from_dict(sample_config)


def test_zone_list_entries_must_be_strings(sample_config: dict) -> None:
    sample_config["vpc"]["availability_zone_names"] = ["us-west-2a", None]
    with pytest.raises(ValueError, match="must be a list of strings"):
        VpcGenConfig._from_dict(sample_config)


def test_endpoints_require_region(sample_config: dict) -> None:
    del sample_config["region"]
    config = VpcGenConfig._from_dict(sample_config)
    with pytest.raises(ValueError, match="region"):
        config.validate()


def test_execution_limits(sample_config: dict) -> None:
    sample_config["execution"] = {"max_workers": 0}
    config = VpcGenConfig._from_dict(sample_config)
    with pytest.raises(ValueError, match="max_workers"):
        config.validate()


class TestVpcSpec:
    def test_normalizes_inputs(self) -> None:
        tags = {"team": "net"}
        spec = VpcSpec(base_cidr="10.0.0.0/16", zone_names=["a", "b"], tags=tags)
        tags["team"] = "changed"

        assert spec.zone_names == ("a", "b")
        assert spec.tags == {"team": "net"}
        assert spec.zone_count == 2

    def test_is_read_only(self) -> None:
        spec = VpcSpec(base_cidr="10.0.0.0/16", zone_names=("a",))
        with pytest.raises(AttributeError):
            spec.base_cidr = "10.1.0.0/16"  # type: ignore[misc]

    def test_private_zone_requires_name(self) -> None:
        spec = VpcSpec(
            base_cidr="10.0.0.0/16", zone_names=("a",), create_private_zone=True
        )
        with pytest.raises(ValueError, match="private_zone_name"):
            spec.validate()

    def test_duplicate_zones(self) -> None:
        spec = VpcSpec(base_cidr="10.0.0.0/16", zone_names=("a", "b", "a"))
        with pytest.raises(ValueError, match="duplicate"):
            spec.validate()

    def test_empty_zone_list(self) -> None:
        with pytest.raises(InvalidZoneCountError):
            VpcSpec(base_cidr="10.0.0.0/16", zone_names=()).validate()

    def test_zone_names_string_rejected(self) -> None:
        with pytest.raises(ValueError):
            VpcSpec(base_cidr="10.0.0.0/16", zone_names="abc")  # type: ignore[arg-type]

    def test_zone_entries_must_be_strings(self) -> None:
        with pytest.raises(ValueError, match="must be strings"):
            VpcSpec(base_cidr="10.0.0.0/16", zone_names=("a", None))  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "zones",
        [
            ("us-west-2a", "US-WEST-2A"),
            ("us_west_2a", "us-west-2a"),
            ("us west 2a", "us-west-2a"),
        ],
    )
    def test_zones_with_same_slug_rejected(self, zones: tuple[str, str]) -> None:
        spec = VpcSpec(base_cidr="10.0.0.0/16", zone_names=zones)
        with pytest.raises(ValueError, match="both map to"):
            spec.validate()

    def test_zone_without_usable_characters_rejected(self) -> None:
        spec = VpcSpec(base_cidr="10.0.0.0/16", zone_names=("a", "!!"))
        with pytest.raises(ValueError, match="no usable characters"):
            spec.validate()


def test_summary(vpc_config: VpcGenConfig) -> None:
    summary = vpc_config.summary()
    assert "VPC GENERATOR CONFIGURATION" in summary
    assert "10.0.0.0/16" in summary
    assert "internal.example.com" in summary
