from datetime import datetime

from pydantic import BaseModel


class User(BaseModel):
    login: str
    avatar_url: str = ""


class GitActor(BaseModel):
    name: str = ""
    email: str = ""
    date: datetime


class GitCommit(BaseModel):
    message: str
    author: GitActor


class Commit(BaseModel):
    sha: str
    html_url: str
    commit: GitCommit
    author: User | None = None


class GitObject(BaseModel):
    sha: str
    type: str


class GitRef(BaseModel):
    ref: str
    object: GitObject


class Content(BaseModel):
    path: str
    content: str
    encoding: str = "base64"
