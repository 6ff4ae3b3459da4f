from sanic import Request, Sanic, response
import aiohttp
from gidgethub import aiohttp as gh_aiohttp
import gidgetlab.aiohttp
from sanic.log import logger
import cachetools
from aiolimiter import AsyncLimiter
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from build_trigger import metrics
from build_trigger.config import Config
from build_trigger.converter import Converter
from build_trigger.exceptions import NotFoundError, TriggerError, UnauthorizedError
from build_trigger.github import GitHubCommitService, GitHubFileService
from build_trigger.gitlab import GitLabTriggerer
from build_trigger.interfaces import (
    CommitService,
    RepositoryStore,
    TemplateStore,
    Triggerer,
    UserStore,
)
from build_trigger.normalize import TriggerRequest, extract_params
from build_trigger.store import (
    FileTemplateStore,
    MemoryRepositoryStore,
    MemoryUserStore,
    load_registry,
)
from build_trigger.trigger import Orchestrator


def form_value(request: Request, key: str) -> str | None:
    """Look up ``key`` in the form body first, then in the query string."""
    for source in (request.form, request.args):
        if key in source:
            return source.get(key)
    return None


def create_app(
    config: Config | None = None,
    *,
    users: UserStore | None = None,
    repos: RepositoryStore | None = None,
    commits: CommitService | None = None,
    triggerer: Triggerer | None = None,
    templates: TemplateStore | None = None,
):
    if config is None:
        config = Config()  # type: ignore

    app = Sanic("build-trigger")
    app.update_config(config.model_dump())
    logger.setLevel(config.OVERRIDE_LOGGING)
    config.print_config()

    app.ctx.cache = cachetools.LRUCache(maxsize=500)

    if users is None or repos is None:
        if config.REGISTRY_FILE is not None:
            registry_users, registry_repos = load_registry(config.REGISTRY_FILE)
        else:
            logger.warning("No registry file configured, starting with empty stores")
            registry_users, registry_repos = MemoryUserStore(), MemoryRepositoryStore()
        users = users or registry_users
        repos = repos or registry_repos

    if templates is None and config.TEMPLATE_DIR is not None:
        templates = FileTemplateStore(config.TEMPLATE_DIR)

    app.ctx.users = users
    app.ctx.repos = repos
    app.ctx.commits = commits
    app.ctx.triggerer = triggerer
    app.ctx.converter = Converter(
        templates=templates,
        enabled=config.JSONNET_ENABLED,
        max_stack=config.JSONNET_MAX_STACK,
        max_trace=config.JSONNET_MAX_TRACE,
    )

    limiter = AsyncLimiter(10)

    @app.listener("before_server_start")
    async def init(app, loop):
        logger.debug("Creating aiohttp session")
        app.ctx.aiohttp_session = aiohttp.ClientSession()

        if app.ctx.commits is None:
            app.ctx.commits = GitHubCommitService(
                app.ctx.aiohttp_session, config, cache=app.ctx.cache
            )
        if app.ctx.triggerer is None:
            app.ctx.triggerer = GitLabTriggerer(
                app.ctx.aiohttp_session,
                config,
                users=app.ctx.users,
                files=GitHubFileService(
                    app.ctx.aiohttp_session, config, cache=app.ctx.cache
                ),
                converter=app.ctx.converter,
            )

    @app.listener("after_server_stop")
    async def close(app, loop):
        logger.debug("Closing aiohttp session")
        await app.ctx.aiohttp_session.close()

    @app.on_request
    async def attach_user(request: Request):
        request.ctx.user = None
        token = form_value(request, "access_token") or request.token
        if not token:
            return
        try:
            request.ctx.user = await app.ctx.users.find_token(token)
        except NotFoundError:
            logger.debug("No user for the supplied access token")

    @app.exception(TriggerError)
    async def handle_trigger_error(request: Request, exception: TriggerError):
        logger.debug("Request failed with %d: %s", exception.status_code, exception)
        return response.json(
            {"message": exception.message}, status=exception.status_code
        )

    @app.route("/")
    async def index(request):
        logger.debug("status check")
        return response.text("ok")

    @app.route("/metrics")
    async def prometheus(request):
        return response.raw(generate_latest(), content_type=CONTENT_TYPE_LATEST)

    @app.route("/health")
    async def health(request):
        if not limiter.has_capacity():
            return response.text("Rate limited", status=429)
        await limiter.acquire()

        github_ok = False
        gitlab_ok = False

        logger.info("Checking health")
        try:
            gh = gh_aiohttp.GitHubAPI(
                app.ctx.aiohttp_session,
                config.GITHUB_REQUESTER,
                base_url=config.GITHUB_API_URL,
            )
            rate_limit = await gh.getitem("/rate_limit")
            if rate_limit is None:
                logger.error("GitHub rate limit info is None")
            else:
                logger.info("GitHub ok")
                github_ok = True
        except Exception as e:
            logger.error("GitHub rate limit request failed: %s", e)
            logger.exception(e)

        try:
            gl = gidgetlab.aiohttp.GitLabAPI(
                app.ctx.aiohttp_session,
                requester=config.GITHUB_REQUESTER,
                access_token=config.GITLAB_ACCESS_TOKEN,
                url=config.GITLAB_API_URL,
            )
            project = await gl.getitem(f"/projects/{config.GITLAB_PROJECT_ID}")
            if project is None:
                logger.error("GitLab project info is None")
            else:
                logger.info("GitLab ok")
                gitlab_ok = True
        except Exception as e:
            logger.error("GitLab project info failed: %s", e)
            logger.exception(e)

        metrics.health_check_status.labels("github").set(int(github_ok))
        metrics.health_check_status.labels("gitlab").set(int(gitlab_ok))

        status = 200 if github_ok and gitlab_ok else 500
        github_str = "ok" if github_ok else "not ok"
        gitlab_str = "ok" if gitlab_ok else "not ok"
        text = f"GitHub: {github_str}, GitLab: {gitlab_str}"
        return response.text(text, status=status)

    @app.post("/repos/<owner>/<name>/builds")
    async def create_build(request: Request, owner: str, name: str):
        logger.debug("Build requested for %s/%s", owner, name)
        metrics.triggers_received_total.labels(owner).inc()

        caller = request.ctx.user
        if caller is None:
            raise UnauthorizedError("authentication required")

        trigger_request = TriggerRequest.from_form(
            lambda key: form_value(request, key)
        )
        params = extract_params(request.get_args(keep_blank_values=True).items())

        orchestrator = Orchestrator(
            users=app.ctx.users,
            repos=app.ctx.repos,
            commits=app.ctx.commits,
            triggerer=app.ctx.triggerer,
        )
        with metrics.track_trigger(owner):
            build = await orchestrator.trigger(
                owner, name, trigger_request, caller, params
            )

        return response.json(build.model_dump(), status=200)

    return app
