import base64
from urllib.parse import quote

import aiohttp
import gidgethub
from gidgethub import aiohttp as gh_aiohttp
from gidgethub.abc import GitHubAPI
from sanic.log import logger

from build_trigger.config import Config
from build_trigger.exceptions import NotFoundError
from build_trigger.github.models import Commit as GitHubCommit
from build_trigger.github.models import Content, GitRef
from build_trigger.models import Commit, CommitAuthor, User


def client_for_user(
    session: aiohttp.ClientSession, user: User, config: Config, cache=None
) -> GitHubAPI:
    return gh_aiohttp.GitHubAPI(
        session,
        config.GITHUB_REQUESTER,
        oauth_token=user.token or None,
        cache=cache,
        base_url=config.GITHUB_API_URL,
    )


def convert_commit(data: GitHubCommit, ref: str = "") -> Commit:
    author = CommitAuthor(
        name=data.commit.author.name,
        email=data.commit.author.email,
        date=int(data.commit.author.date.timestamp()),
    )
    if data.author is not None:
        author.login = data.author.login
        author.avatar = data.author.avatar_url

    return Commit(
        sha=data.sha,
        ref=ref,
        message=data.commit.message,
        link=data.html_url,
        author=author,
    )


async def _getitem(gh: GitHubAPI, url: str, what: str):
    try:
        return await gh.getitem(url)
    except gidgethub.BadRequest as e:
        if e.status_code == 404:
            raise NotFoundError(f"{what} not found") from e
        raise e


class GitHubCommitService:
    def __init__(self, session: aiohttp.ClientSession, config: Config, cache=None):
        self.session = session
        self.config = config
        self.cache = cache

    async def find(self, owner: User, slug: str, sha: str) -> Commit:
        gh = client_for_user(self.session, owner, self.config, self.cache)
        logger.debug("Looking up commit %s in %s", sha, slug)
        data = await _getitem(gh, f"/repos/{slug}/commits/{sha}", f"commit {sha}")
        return convert_commit(GitHubCommit.model_validate(data))

    async def find_ref(self, owner: User, slug: str, ref: str) -> Commit:
        gh = client_for_user(self.session, owner, self.config, self.cache)
        name = ref.removeprefix("refs/")
        logger.debug("Looking up reference %s in %s", name, slug)
        data = await _getitem(gh, f"/repos/{slug}/git/ref/{name}", f"reference {ref}")
        git_ref = GitRef.model_validate(data)

        data = await _getitem(
            gh, f"/repos/{slug}/commits/{git_ref.object.sha}", f"commit of {ref}"
        )
        return convert_commit(GitHubCommit.model_validate(data), ref=ref)


class GitHubFileService:
    def __init__(self, session: aiohttp.ClientSession, config: Config, cache=None):
        self.session = session
        self.config = config
        self.cache = cache

    async def find(self, owner: User, slug: str, sha: str, path: str) -> str:
        gh = client_for_user(self.session, owner, self.config, self.cache)
        url = f"/repos/{slug}/contents/{quote(path)}?ref={sha}"
        logger.debug("Fetching %s", url)
        content = Content.model_validate(await _getitem(gh, url, f"file {path}"))
        if content.encoding != "base64":
            raise ValueError(f"Unexpected content encoding {content.encoding}")
        return base64.b64decode(content.content).decode("utf-8")
