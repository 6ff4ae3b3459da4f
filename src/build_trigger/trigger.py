from enum import StrEnum

from sanic.log import logger

from build_trigger import commits as commit_resolver
from build_trigger import metrics
from build_trigger.exceptions import NotFoundError, SchedulerError
from build_trigger.interfaces import (
    CommitService,
    RepositoryStore,
    Triggerer,
    UserStore,
)
from build_trigger.models import Build, User
from build_trigger.normalize import (
    COMMIT_RULES,
    REF_RULES,
    Defaults,
    TriggerRequest,
    apply_rules,
    build_hook,
    lookup_key,
)


class Outcome(StrEnum):
    triggered = "triggered"
    not_found = "not_found"
    failed = "failed"


class Orchestrator:
    def __init__(
        self,
        users: UserStore,
        repos: RepositoryStore,
        commits: CommitService,
        triggerer: Triggerer,
    ):
        self.users = users
        self.repos = repos
        self.commits = commits
        self.triggerer = triggerer

    async def trigger(
        self,
        namespace: str,
        name: str,
        request: TriggerRequest,
        caller: User,
        params: dict[str, str],
    ) -> Build:
        """
        Create a build for the requested commit of ``namespace/name``.

        Raises:
            NotFoundError: repository, owner or commit could not be resolved
            SchedulerError: the triggerer rejected or failed the hook
        """
        try:
            build = await self._trigger(namespace, name, request, caller, params)
        except NotFoundError:
            metrics.trigger_outcomes_total.labels(Outcome.not_found).inc()
            raise
        except SchedulerError:
            metrics.trigger_outcomes_total.labels(Outcome.failed).inc()
            raise
        metrics.trigger_outcomes_total.labels(Outcome.triggered).inc()
        return build

    async def _trigger(
        self,
        namespace: str,
        name: str,
        request: TriggerRequest,
        caller: User,
        params: dict[str, str],
    ) -> Build:
        try:
            repo = await self.repos.find_name(namespace, name)
        except Exception as e:
            logger.debug("Repository %s/%s not found: %s", namespace, name, e)
            raise NotFoundError(f"repository {namespace}/{name} not found") from e

        try:
            owner = await self.users.find(repo.user_id)
        except Exception as e:
            logger.debug("Owner %d of %s not found: %s", repo.user_id, repo.slug, e)
            raise NotFoundError(f"owner of {repo.slug} not found") from e

        defaults = Defaults(repo=repo, caller=caller)
        request = apply_rules(request, REF_RULES, defaults)

        strategy, key = lookup_key(request)
        logger.debug("Resolving commit for %s by %s %s", repo.slug, strategy, key)
        if strategy == "sha":
            commit = await commit_resolver.resolve_by_sha(
                self.commits, owner, repo.slug, key
            )
        else:
            commit = await commit_resolver.resolve_by_ref(
                self.commits, owner, repo.slug, key
            )

        defaults = Defaults(repo=repo, caller=caller, commit=commit)
        request = apply_rules(request, COMMIT_RULES, defaults)
        hook = build_hook(request, commit, params)

        logger.debug(
            "Triggering %s build for %s at %s (%s)",
            hook.event,
            repo.slug,
            hook.after,
            hook.ref,
        )
        try:
            build = await self.triggerer.trigger(repo, hook)
        except SchedulerError:
            raise
        except Exception as e:
            logger.error("Trigger for %s failed: %s", repo.slug, e)
            raise SchedulerError(str(e)) from e

        logger.info("Triggered build %s for %s", build.id, repo.slug)
        return build
