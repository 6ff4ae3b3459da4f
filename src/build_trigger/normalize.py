"""
Normalization of raw trigger inputs into an event record.

Defaults are applied as ordered rule lists: a rule only fires when its field
is empty, and later rules read values produced by earlier ones (``ref`` is
expanded from the already-defaulted ``branch``).
"""

from dataclasses import dataclass
from typing import Callable, Iterable

from pydantic import BaseModel

from build_trigger import scm
from build_trigger.models import EVENT_CUSTOM, Commit, Hook, Repository, User

RESERVED_PARAMS = frozenset({"access_token", "commit", "branch"})

# request field -> form/query key
FORM_FIELDS = {
    "sha": "commit",
    "before": "before",
    "after": "after",
    "branch": "branch",
    "source_branch": "source_branch",
    "target_branch": "target_branch",
    "ref": "ref",
    "event": "event",
    "trigger": "trigger",
    "link": "link",
    "title": "title",
}


class TriggerRequest(BaseModel):
    sha: str = ""
    before: str = ""
    after: str = ""
    branch: str = ""
    source_branch: str = ""
    target_branch: str = ""
    ref: str = ""
    event: str = ""
    trigger: str = ""
    link: str = ""
    title: str = ""

    @classmethod
    def from_form(cls, get_value: Callable[[str], str | None]) -> "TriggerRequest":
        values = {}
        for field, key in FORM_FIELDS.items():
            values[field] = get_value(key) or ""
        return cls(**values)


@dataclass(frozen=True)
class Defaults:
    repo: Repository
    caller: User
    commit: Commit | None = None


Rule = Callable[[TriggerRequest, Defaults], str]


def _commit(defaults: Defaults) -> Commit:
    assert defaults.commit is not None, "commit rules need a resolved commit"
    return defaults.commit


# applied before the commit lookup
REF_RULES: list[tuple[str, Rule]] = [
    ("branch", lambda req, d: d.repo.branch),
    ("source_branch", lambda req, d: req.branch),
    ("target_branch", lambda req, d: req.branch),
    ("ref", lambda req, d: scm.expand_ref(req.branch, "refs/heads")),
]

# applied once the commit is known
COMMIT_RULES: list[tuple[str, Rule]] = [
    ("event", lambda req, d: EVENT_CUSTOM),
    ("trigger", lambda req, d: d.caller.login),
    ("link", lambda req, d: _commit(d).link),
    ("before", lambda req, d: _commit(d).sha),
    ("after", lambda req, d: _commit(d).sha),
]


def apply_rules(
    request: TriggerRequest, rules: list[tuple[str, Rule]], defaults: Defaults
) -> TriggerRequest:
    """Return a copy of ``request`` with every empty field defaulted in order."""
    request = request.model_copy()
    for field, rule in rules:
        if not getattr(request, field):
            setattr(request, field, rule(request, defaults))
    return request


def lookup_key(request: TriggerRequest) -> tuple[str, str]:
    """
    Pick the commit lookup strategy.

    Returns ``("sha", <sha>)`` when an explicit commit was requested and
    ``("ref", <expanded ref>)`` otherwise. Never both.
    """
    if request.sha:
        return "sha", request.sha
    return "ref", request.ref


def extract_params(query: Iterable[tuple[str, list[str]]]) -> dict[str, str]:
    """Collect build parameters from query arguments, first value wins."""
    params: dict[str, str] = {}
    for key, values in query:
        if key in RESERVED_PARAMS:
            continue
        if len(values) == 0:
            continue
        params[key] = values[0]
    return params


def build_hook(request: TriggerRequest, commit: Commit, params: dict[str, str]) -> Hook:
    return Hook(
        trigger=request.trigger,
        event=request.event,
        link=request.link,
        timestamp=commit.author.date,
        title=request.title,
        message=commit.message,
        before=request.before,
        after=request.after,
        ref=request.ref,
        source=request.source_branch,
        target=request.target_branch,
        author_login=commit.author.login,
        author_name=commit.author.name,
        author_email=commit.author.email,
        author_avatar=commit.author.avatar,
        sender=request.trigger,
        params=dict(params),
    )
