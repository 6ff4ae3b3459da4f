from sanic.log import logger

from build_trigger import metrics
from build_trigger.exceptions import NotFoundError
from build_trigger.interfaces import CommitService
from build_trigger.models import Commit, User


async def resolve_by_sha(
    commits: CommitService, owner: User, slug: str, sha: str
) -> Commit:
    try:
        commit = await commits.find(owner, slug, sha)
    except Exception as e:
        logger.debug("Commit %s not found in %s: %s", sha, slug, e)
        metrics.commit_lookups_total.labels("sha", "not_found").inc()
        raise NotFoundError(f"commit {sha} not found in {slug}") from e
    metrics.commit_lookups_total.labels("sha", "found").inc()
    return commit


async def resolve_by_ref(
    commits: CommitService, owner: User, slug: str, ref: str
) -> Commit:
    try:
        commit = await commits.find_ref(owner, slug, ref)
    except Exception as e:
        logger.debug("Reference %s not found in %s: %s", ref, slug, e)
        metrics.commit_lookups_total.labels("ref", "not_found").inc()
        raise NotFoundError(f"reference {ref} not found in {slug}") from e
    metrics.commit_lookups_total.labels("ref", "found").inc()
    return commit
