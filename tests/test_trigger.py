import asyncio

import pytest
from unittest.mock import AsyncMock

from build_trigger.exceptions import ConversionError, NotFoundError, SchedulerError
from build_trigger.normalize import TriggerRequest
from build_trigger.store import MemoryUserStore
from build_trigger.trigger import Orchestrator

from fakes import FakeTriggerer


@pytest.fixture
def orchestrator(users, repos, commits, triggerer):
    return Orchestrator(users=users, repos=repos, commits=commits, triggerer=triggerer)


@pytest.mark.asyncio
async def test_trigger_defaults(orchestrator, commits, triggerer, caller, master_commit):
    build = await orchestrator.trigger(
        "octocat", "hello-world", TriggerRequest(), caller, {}
    )

    assert build.id == 42
    assert commits.calls == [("find_ref", "octocat/hello-world", "refs/heads/master")]

    assert len(triggerer.hooks) == 1
    repo, hook = triggerer.hooks[0]
    assert repo.slug == "octocat/hello-world"
    assert hook.ref == "refs/heads/master"
    assert hook.source == "master"
    assert hook.target == "master"
    assert hook.event == "custom"
    assert hook.trigger == "hubot"
    assert hook.sender == "hubot"
    assert hook.link == master_commit.link
    assert hook.before == master_commit.sha
    assert hook.after == master_commit.sha


@pytest.mark.asyncio
async def test_trigger_by_sha(orchestrator, commits, triggerer, caller):
    request = TriggerRequest(sha="abc123", branch="develop", ref="refs/heads/develop")

    await orchestrator.trigger("octocat", "hello-world", request, caller, {})

    assert commits.calls == [("find", "octocat/hello-world", "abc123")]
    _, hook = triggerer.hooks[0]
    assert hook.after == "abc123"
    assert hook.before == "abc123"
    assert hook.ref == "refs/heads/develop"
    assert hook.author_login == "monalisa"


@pytest.mark.asyncio
async def test_trigger_passes_params(orchestrator, triggerer, caller):
    params = {"DEPLOY_TO": "production"}
    await orchestrator.trigger(
        "octocat", "hello-world", TriggerRequest(), caller, params
    )

    _, hook = triggerer.hooks[0]
    assert hook.params == params
    assert hook.params is not params


@pytest.mark.asyncio
async def test_trigger_repository_not_found(orchestrator, commits, triggerer, caller):
    with pytest.raises(NotFoundError):
        await orchestrator.trigger("octocat", "missing", TriggerRequest(), caller, {})

    assert commits.calls == []
    assert triggerer.hooks == []


@pytest.mark.asyncio
async def test_trigger_owner_not_found(repos, commits, triggerer, caller):
    orchestrator = Orchestrator(
        users=MemoryUserStore([caller]),
        repos=repos,
        commits=commits,
        triggerer=triggerer,
    )

    with pytest.raises(NotFoundError):
        await orchestrator.trigger(
            "octocat", "hello-world", TriggerRequest(), caller, {}
        )

    assert commits.calls == []
    assert triggerer.hooks == []


@pytest.mark.asyncio
async def test_trigger_commit_not_found(orchestrator, triggerer, caller):
    with pytest.raises(NotFoundError):
        await orchestrator.trigger(
            "octocat", "hello-world", TriggerRequest(sha="deadbeef"), caller, {}
        )

    assert triggerer.hooks == []


@pytest.mark.asyncio
async def test_trigger_commit_service_error(users, repos, triggerer, caller):
    commits = AsyncMock()
    commits.find_ref.side_effect = RuntimeError("connection reset")
    orchestrator = Orchestrator(
        users=users, repos=repos, commits=commits, triggerer=triggerer
    )

    with pytest.raises(NotFoundError):
        await orchestrator.trigger(
            "octocat", "hello-world", TriggerRequest(), caller, {}
        )

    commits.find.assert_not_called()
    assert triggerer.hooks == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        SchedulerError("queue is full"),
        ConversionError("RUNTIME ERROR: Unexpected end of file"),
        RuntimeError("boom"),
    ],
)
async def test_trigger_scheduler_failure(users, repos, commits, caller, error):
    orchestrator = Orchestrator(
        users=users, repos=repos, commits=commits, triggerer=FakeTriggerer(error)
    )

    with pytest.raises(SchedulerError) as excinfo:
        await orchestrator.trigger(
            "octocat", "hello-world", TriggerRequest(), caller, {}
        )

    assert str(error) in excinfo.value.message


@pytest.mark.asyncio
async def test_trigger_cancelled_during_commit_lookup(users, repos, triggerer, caller):
    started = asyncio.Event()

    async def slow_lookup(*args):
        started.set()
        await asyncio.sleep(3600)

    commits = AsyncMock()
    commits.find_ref.side_effect = slow_lookup
    orchestrator = Orchestrator(
        users=users, repos=repos, commits=commits, triggerer=triggerer
    )

    task = asyncio.create_task(
        orchestrator.trigger("octocat", "hello-world", TriggerRequest(), caller, {})
    )
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert triggerer.hooks == []
