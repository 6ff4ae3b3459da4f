BRANCH_PREFIX = "refs/heads/"
TAG_PREFIX = "refs/tags/"
PULL_PREFIXES = ("refs/pull/", "refs/pull-requests/", "refs/merge-requests/")


def expand_ref(name: str, prefix: str) -> str:
    """
    Expand a short reference name into a fully qualified git reference.

    Names that already start with ``refs/`` are returned unchanged.

    Args:
        name: Short branch or tag name, or a full reference
        prefix: Reference namespace, e.g. ``refs/heads``

    Returns:
        The fully qualified reference
    """
    prefix = prefix.rstrip("/")
    if name.startswith("refs/"):
        return name
    return f"{prefix}/{name}"


def trim_ref(ref: str) -> str:
    """Strip the branch or tag namespace from a reference."""
    for prefix in (BRANCH_PREFIX, TAG_PREFIX):
        if ref.startswith(prefix):
            return ref[len(prefix) :]
    return ref


def is_branch(ref: str) -> bool:
    return ref.startswith(BRANCH_PREFIX)


def is_tag(ref: str) -> bool:
    return ref.startswith(TAG_PREFIX)


def is_pull_request(ref: str) -> bool:
    return ref.startswith(PULL_PREFIXES)
