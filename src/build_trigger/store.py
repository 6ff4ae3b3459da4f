"""
Registry-backed stores for users, repositories and templates.

Users and repositories are loaded from a YAML registry file, templates are
served from a directory on disk.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel
from sanic.log import logger

from build_trigger.exceptions import NotFoundError
from build_trigger.models import Repository, Template, User


class MemoryUserStore:
    def __init__(self, users: list[User] | None = None):
        self._users = {user.id: user for user in users or []}

    async def find(self, user_id: int) -> User:
        try:
            return self._users[user_id]
        except KeyError:
            raise NotFoundError(f"user {user_id} not found")

    async def find_token(self, token: str) -> User:
        for user in self._users.values():
            if token and user.token == token:
                return user
        raise NotFoundError("no user for token")


class MemoryRepositoryStore:
    def __init__(self, repos: list[Repository] | None = None):
        self._repos = {repo.slug: repo for repo in repos or []}

    async def find_name(self, namespace: str, name: str) -> Repository:
        try:
            return self._repos[f"{namespace}/{name}"]
        except KeyError:
            raise NotFoundError(f"repository {namespace}/{name} not found")


class FileTemplateStore:
    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def find(self, name: str, namespace: str) -> Template:
        if Path(name).name != name:
            raise NotFoundError(f"invalid template name {name}")

        candidates = [self.directory / name]
        if namespace and Path(namespace).name == namespace:
            candidates.insert(0, self.directory / namespace / name)

        for path in candidates:
            if path.is_file():
                logger.debug("Loading template %s from %s", name, path)
                return Template(
                    name=name, namespace=namespace, data=path.read_text()
                )

        raise NotFoundError(f"template {name} not found")


class Registry(BaseModel):
    users: list[User] = []
    repositories: list[Repository] = []


def load_registry(path: str | Path) -> tuple[MemoryUserStore, MemoryRepositoryStore]:
    with open(path) as f:
        registry = Registry.model_validate(yaml.safe_load(f) or {})

    logger.info(
        "Loaded %d users and %d repositories from %s",
        len(registry.users),
        len(registry.repositories),
        path,
    )
    return (
        MemoryUserStore(registry.users),
        MemoryRepositoryStore(registry.repositories),
    )
