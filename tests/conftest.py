"""Pytest configuration and shared fixtures for vpcgen tests."""

import pytest


@pytest.fixture
def sample_config():
    """Sample configuration dictionary for testing."""
    return {
        "name": "example",
        "region": "us-west-2",
        "vpc": {
            "base_cidr": "10.0.0.0/16",
            "availability_zone_names": ["us-west-2a", "us-west-2b", "us-west-2c"],
            "tags": {"team": "network", "env": "test"},
            "create_private_zone": True,
            "private_zone_name": "internal.example.com",
            "enable_s3_endpoint": True,
            "enable_dynamodb_endpoint": False,
        },
        "execution": {"timeout_s": 30, "max_workers": 4},
    }


@pytest.fixture
def temp_config_file(tmp_path, sample_config):
    """Create a temporary configuration file for testing."""
    import yaml

    config_file = tmp_path / "test_config.yml"
    with open(config_file, "w") as f:
        yaml.dump(sample_config, f, default_flow_style=False, indent=2)
    return config_file


@pytest.fixture
def invalid_config_file(tmp_path):
    """Create an invalid YAML configuration file for testing."""
    config_file = tmp_path / "invalid_config.yml"
    config_file.write_text("invalid: yaml: content: [unclosed")
    return config_file


@pytest.fixture
def vpc_config(temp_config_file):
    """Create a complete VpcGenConfig object for testing."""
    from vpcgen.config import VpcGenConfig

    return VpcGenConfig.from_yaml(temp_config_file)


@pytest.fixture
def minimal_spec():
    """Two-zone spec with every optional feature disabled."""
    from vpcgen.config import VpcSpec

    return VpcSpec(base_cidr="10.0.0.0/16", zone_names=("us-west-2a", "us-west-2b"))


@pytest.fixture
def full_spec():
    """Three-zone spec with private DNS and both endpoints enabled."""
    from vpcgen.config import VpcSpec

    return VpcSpec(
        base_cidr="172.16.0.0/16",
        zone_names=("us-east-1a", "us-east-1b", "us-east-1c"),
        tags={"team": "network"},
        create_private_zone=True,
        private_zone_name="corp.internal",
        enable_s3_endpoint=True,
        enable_dynamodb_endpoint=True,
    )
