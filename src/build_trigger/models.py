from typing import Any

from pydantic import BaseModel, ConfigDict, Field

EVENT_CUSTOM = "custom"
EVENT_PUSH = "push"
EVENT_PULL_REQUEST = "pull_request"
EVENT_TAG = "tag"


class User(BaseModel):
    id: int
    login: str
    email: str = ""
    avatar: str = ""
    token: str = ""


class Repository(BaseModel):
    id: int
    user_id: int
    namespace: str
    name: str
    branch: str = "master"
    config_path: str = ".drone.yml"
    link: str = ""
    http_url: str = ""

    @property
    def slug(self) -> str:
        return f"{self.namespace}/{self.name}"


class CommitAuthor(BaseModel):
    login: str = ""
    name: str = ""
    email: str = ""
    avatar: str = ""
    date: int = 0


class Commit(BaseModel):
    model_config = ConfigDict(frozen=True)

    sha: str
    ref: str = ""
    message: str = ""
    link: str = ""
    author: CommitAuthor = Field(default_factory=CommitAuthor)


class Hook(BaseModel):
    trigger: str
    event: str
    link: str = ""
    timestamp: int = 0
    title: str = ""
    message: str = ""
    before: str = ""
    after: str = ""
    ref: str = ""
    source: str = ""
    target: str = ""
    author_login: str = ""
    author_name: str = ""
    author_email: str = ""
    author_avatar: str = ""
    sender: str = ""
    params: dict[str, str] = Field(default_factory=dict)


class Build(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    status: str
    ref: str = ""
    sha: str = ""
    web_url: str = ""


class ConfigSource(BaseModel):
    path: str
    data: str


class Template(BaseModel):
    name: str
    data: str
    namespace: str = ""


class ConvertArgs(BaseModel):
    repo: Repository
    build: Hook
    config: ConfigSource


TemplateData = dict[str, Any]
