from typing import Protocol

from build_trigger.models import Build, Commit, Hook, Repository, Template, User


class UserStore(Protocol):
    async def find(self, user_id: int) -> User: ...

    async def find_token(self, token: str) -> User: ...


class RepositoryStore(Protocol):
    async def find_name(self, namespace: str, name: str) -> Repository: ...


class CommitService(Protocol):
    async def find(self, owner: User, slug: str, sha: str) -> Commit: ...

    async def find_ref(self, owner: User, slug: str, ref: str) -> Commit: ...


class FileService(Protocol):
    async def find(self, owner: User, slug: str, sha: str, path: str) -> str: ...


class TemplateStore(Protocol):
    def find(self, name: str, namespace: str) -> Template: ...


class Triggerer(Protocol):
    async def trigger(self, repo: Repository, hook: Hook) -> Build: ...
