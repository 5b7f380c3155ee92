"""Resource tag helpers."""

from __future__ import annotations

from collections.abc import Mapping


def merge_tags(
    user_tags: Mapping[str, str] | None, default_tags: Mapping[str, str]
) -> dict[str, str]:
    """Merge caller tags over resource defaults without mutating either input.

    Keys present in ``user_tags`` win on conflict; defaults only fill the gaps.

    Args:
        user_tags: Tags supplied by the caller, may be ``None``.
        default_tags: Tags the builder attaches to a resource (e.g. ``Name``).

    Returns:
        New dictionary holding the merged tags.
    """
    merged = dict(default_tags)
    merged.update(user_tags or {})
    return merged
