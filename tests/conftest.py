import pytest
from sanic import Sanic
from sanic_testing import TestManager
from sanic.log import logger

from build_trigger.config import Config
from build_trigger.models import Commit, CommitAuthor, Repository, User
from build_trigger.store import MemoryRepositoryStore, MemoryUserStore

from fakes import FakeCommitService, FakeTriggerer


@pytest.fixture
def config():
    config = Config(
        GITLAB_ACCESS_TOKEN="abc",
        GITLAB_PIPELINE_TRIGGER_TOKEN="abc",
        GITLAB_TRIGGER_URL="https://gitlab.example.com/api/v4/projects/123/trigger/pipeline",
        GITLAB_API_URL="https://gitlab.example.com/api/v4",
        GITLAB_PROJECT_ID=123,
        TRIGGER_SECRET=b"abc",
        OVERRIDE_LOGGING="DEBUG",
        STERILE=False,
    )

    logger.setLevel(config.OVERRIDE_LOGGING)

    return config


@pytest.fixture
def owner():
    return User(id=1, login="octocat", token="owner-token")


@pytest.fixture
def caller():
    return User(id=2, login="hubot", token="caller-token")


@pytest.fixture
def repository():
    return Repository(
        id=1,
        user_id=1,
        namespace="octocat",
        name="hello-world",
        branch="master",
        config_path=".drone.yml",
        link="https://github.com/octocat/hello-world",
    )


@pytest.fixture
def master_commit():
    return Commit(
        sha="7fd1a60b01f91b314f59955a4e4d4e80d8edf11d",
        ref="refs/heads/master",
        message="Merge pull request #6 from Spaceghost/patch-1",
        link="https://github.com/octocat/hello-world/commit/7fd1a60b",
        author=CommitAuthor(
            login="octocat",
            name="The Octocat",
            email="octocat@nowhere.com",
            avatar="https://avatars.githubusercontent.com/u/583231",
            date=1331075210,
        ),
    )


@pytest.fixture
def pinned_commit():
    return Commit(
        sha="abc123",
        message="Pin the toolchain",
        link="https://github.com/octocat/hello-world/commit/abc123",
        author=CommitAuthor(login="monalisa", name="Mona Lisa", date=1700000000),
    )


@pytest.fixture
def users(owner, caller):
    return MemoryUserStore([owner, caller])


@pytest.fixture
def repos(repository):
    return MemoryRepositoryStore([repository])


@pytest.fixture
def commits(master_commit, pinned_commit):
    return FakeCommitService([master_commit, pinned_commit])


@pytest.fixture
def triggerer():
    return FakeTriggerer()


@pytest.fixture(scope="function")
def app(config, users, repos, commits, triggerer) -> Sanic:
    """Create a Sanic app for testing."""
    from build_trigger.web import create_app

    app = create_app(
        config=config,
        users=users,
        repos=repos,
        commits=commits,
        triggerer=triggerer,
    )
    TestManager(app)
    return app

