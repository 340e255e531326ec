"""Deterministic resource identifiers.

Resolution runs before anything exists in AWS, so resources get stable
placeholder ids derived from their logical names. The same declaration always
yields the same ids, which keeps plans and diagnostics reproducible.
"""

import hashlib


def resource_id(prefix: str, *parts: str) -> str:
    """Build an AWS-shaped id such as ``vpc-0a1b2c...`` from logical parts."""
    digest = hashlib.sha1("/".join(parts).encode("utf-8")).hexdigest()
    return f"{prefix}-0{digest[:16]}"
