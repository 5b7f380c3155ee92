"""Naming utilities for stable resource identifiers.

Provides a single source of truth for the names given to every node in a
resource graph. Names are used by provisioning collaborators to identify
resources idempotently, so they must not change between builds with identical
input.

Per-zone names end in ``{kind}-{zone_slug}``. No per-zone kind prefix is a
hyphen-delimited prefix of another name, so zones with distinct slugs always
yield distinct names.
"""

from __future__ import annotations

import re


def zone_slug(zone: str) -> str:
    """Return a stable slug for an availability zone identifier.

    Rules:
    - Lowercase the string.
    - Replace whitespace, underscores and any other character outside
      ``a-z``, ``0-9`` and ``-`` with a hyphen.
    - Collapse duplicate hyphens and strip leading/trailing hyphens.

    Args:
        zone: Zone identifier (e.g., ``"us-west-2a"``).

    Returns:
        Normalized slug string (e.g., ``"US West 2a"`` -> ``"us-west-2a"``).
    """

    if not isinstance(zone, str):
        zone = str(zone)

    lowered = zone.lower().strip()
    cleaned = re.sub(r"[^a-z0-9-]", "-", lowered)
    return re.sub(r"-+", "-", cleaned).strip("-")


def resource_name(component: str, *parts: str, zone: str | None = None) -> str:
    """Return ``{component}-{part...}[-{zone}]`` for a graph node.

    Examples:
        >>> resource_name("example", "vpc")
        'example-vpc'
        >>> resource_name("example", "private", "subnet", zone="us-west-2a")
        'example-private-subnet-us-west-2a'
    """
    pieces = [component, *parts]
    if zone is not None:
        pieces.append(zone_slug(zone))
    return "-".join(pieces)
