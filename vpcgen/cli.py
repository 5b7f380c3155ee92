"""Command line interface for VPC topology planning."""

from __future__ import annotations

import argparse
import sys
import time
from contextlib import contextmanager
from pathlib import Path

import yaml

from vpcgen.config import VpcGenConfig
from vpcgen.log_config import get_logger

logger = get_logger(__name__)


@contextmanager
def Timer(description: str):
    """Context manager for timing operations with both print and log output.

    Args:
        description: Operation description for timing messages.

    Yields:
        None: Context manager yields nothing.
    """
    print(f"🔄 {description}...")
    logger.info(f"Starting {description}")
    start = time.time()
    try:
        yield
        elapsed = time.time() - start
        print(f"✅ {description} (completed in {elapsed:.1f}s)")
        logger.info(f"Completed {description} in {elapsed:.1f}s")
    except Exception as e:
        elapsed = time.time() - start
        print(f"❌ {description} (failed after {elapsed:.1f}s)")
        logger.error(f"Failed {description} after {elapsed:.1f}s: {e}")
        raise


def _load_config(config_path: Path) -> VpcGenConfig:
    """Load and validate configuration.

    Args:
        config_path: Path to YAML configuration file.

    Returns:
        Loaded and validated configuration object.

    Raises:
        SystemExit: If configuration loading or validation fails.
    """
    try:
        config = VpcGenConfig.from_yaml(config_path)
        config.validate()
        logger.info(f"Loaded configuration from {config_path}")
        return config
    except FileNotFoundError:
        print(f"❌ Configuration file not found: {config_path}")
        logger.error(f"Configuration file not found: {config_path}")
        sys.exit(2)  # Config problem
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"❌ Configuration error: {e}")
        print(f"💡 Check YAML syntax in: {config_path}")
        sys.exit(2)  # Config problem


def allocate_command(args: argparse.Namespace) -> None:
    """Print the private/public subnet blocks for a base CIDR and zone count.

    Args:
        args: Parsed command line arguments with ``base_cidr`` and ``zones``.
    """
    from vpcgen.cidr import allocate

    try:
        allocation = allocate(args.base_cidr, args.zones)
    except ValueError as e:
        logger.error(f"Allocation failed: {e}")
        print(f"❌ {e}")
        sys.exit(3)  # Validation failure

    print(
        f"Base: {allocation.base_cidr}  partitions: {allocation.partition_count} "
        f"(+{allocation.partition_bits} bits)"
    )
    for i, (private, public) in enumerate(
        zip(allocation.private_blocks, allocation.public_blocks)
    ):
        print(f"   zone {i}: private {private:<18} public {public}")


def plan_command(args: argparse.Namespace) -> None:
    """Build the resource graph for a configuration and report it.

    Args:
        args: Parsed command line arguments containing config and output paths.
    """
    from vpcgen.component import plan_vpc

    config_path = Path(args.config)
    config_obj = _load_config(config_path)

    try:
        with Timer("Resource graph planning"):
            plan = plan_vpc(config_obj.name, config_obj.vpc, region=config_obj.region)
    except ValueError as e:
        logger.error(f"Validation error: {e}")
        print("💡 Check the base CIDR and availability zones in the configuration")
        sys.exit(3)  # Validation failure

    graph = plan.graph
    waves = graph.creation_waves()
    print(f"📊 Plan: {len(graph):,} resources, {len(graph.edges()):,} edges")
    print(f"   Creation waves: {len(waves)}")
    for i, zone in enumerate(config_obj.vpc.zone_names):
        print(
            f"   {zone}: private {plan.allocation.private_blocks[i]}, "
            f"public {plan.allocation.public_blocks[i]}"
        )

    document = {
        "name": plan.name,
        "allocation": {
            "base_cidr": plan.allocation.base_cidr,
            "partition_bits": plan.allocation.partition_bits,
            "private": list(plan.allocation.private_blocks),
            "public": list(plan.allocation.public_blocks),
        },
        **graph.to_dict(),
    }
    plan_yaml = yaml.safe_dump(document, sort_keys=False, default_flow_style=False)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            f.write(plan_yaml)
        print(f"📄 Plan written to: {output_path}")
    if args.print:
        print("\n" + "=" * 60)
        print("RESOURCE PLAN YAML:")
        print("=" * 60)
        print(plan_yaml)


def simulate_command(args: argparse.Namespace) -> None:
    """Run the plan through the dry-run provisioner and print the outputs.

    Args:
        args: Parsed command line arguments containing the config path.
    """
    from vpcgen.component import provision_vpc
    from vpcgen.provisioning import DryRunProvisioner, StaticRegion

    config_path = Path(args.config)
    config_obj = _load_config(config_path)
    region = StaticRegion(config_obj.region) if config_obj.region else None

    try:
        with DryRunProvisioner(max_workers=config_obj.execution.max_workers) as prov:
            with Timer("Dry-run provisioning"):
                outputs = provision_vpc(config_obj.name, config_obj.vpc, prov, region)
                result = outputs.result(timeout=config_obj.execution.timeout_s)
            print(f"📊 Requests issued: {len(prov.calls)}")
    except ValueError as e:
        logger.error(f"Validation error: {e}")
        sys.exit(3)  # Validation failure
    except Exception as e:
        logger.error(f"Provisioning failed: {e}")
        print("💡 Use -v for detailed error information")
        sys.exit(1)  # Runtime error

    print(yaml.safe_dump(result, sort_keys=False, default_flow_style=False))


def info_command(args: argparse.Namespace) -> None:
    """Show configuration information.

    Args:
        args: Parsed command line arguments containing config file path.
    """
    config_path = Path(args.config)
    config_obj = _load_config(config_path)
    print(config_obj.summary())


def main() -> None:
    """Parse command line arguments and execute the appropriate subcommand.

    Configures logging, parses CLI arguments, and dispatches to the correct
    command function (allocate, plan, simulate, or info).
    """
    parser = argparse.ArgumentParser(
        prog="vpcgen",
        description="Plan VPC topologies: per-zone subnets, routing and NAT egress.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global options
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress console output (logs only)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Allocate command
    allocate_parser = subparsers.add_parser(
        "allocate", help="Show subnet blocks for a base CIDR and zone count"
    )
    allocate_parser.add_argument("base_cidr", help="Base IPv4 block, e.g. 10.0.0.0/16")
    allocate_parser.add_argument("zones", type=int, help="Number of availability zones")
    allocate_parser.set_defaults(func=allocate_command)

    # Plan command
    plan_parser = subparsers.add_parser(
        "plan", help="Build the resource graph for a configuration"
    )
    plan_parser.add_argument(
        "config",
        nargs="?",
        default="vpc.yml",
        help="Configuration file path (default: vpc.yml)",
    )
    plan_parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Write the plan as YAML to this file",
    )
    plan_parser.add_argument(
        "--print",
        action="store_true",
        help="Print the plan YAML to stdout",
    )
    plan_parser.set_defaults(func=plan_command)

    # Simulate command
    simulate_parser = subparsers.add_parser(
        "simulate", help="Provision the plan against the dry-run provisioner"
    )
    simulate_parser.add_argument(
        "config",
        nargs="?",
        default="vpc.yml",
        help="Configuration file path (default: vpc.yml)",
    )
    simulate_parser.set_defaults(func=simulate_command)

    # Info command
    info_parser = subparsers.add_parser("info", help="Show configuration information")
    info_parser.add_argument(
        "config",
        nargs="?",
        default="vpc.yml",
        help="Configuration file path (default: vpc.yml)",
    )
    info_parser.set_defaults(func=info_command)

    # Parse arguments and dispatch
    args = parser.parse_args()

    # Configure logging based on arguments
    import logging

    from vpcgen.log_config import set_global_log_level

    if args.verbose:
        log_level = logging.DEBUG
    else:
        log_level = logging.INFO

    set_global_log_level(log_level)

    # Suppress print output if --quiet is set
    if args.quiet:
        import builtins

        builtins.print = lambda *args, **kwargs: None

    if not hasattr(args, "func") or args.func is None:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
