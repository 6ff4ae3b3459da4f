"""
Jsonnet evaluation of pipeline configuration.

The evaluator receives the build and repository as external variables
(``std.extVar("build.after")``, ``std.extVar("repo.slug")``) and template
parameters as ``input.<name>``. The result is rendered as a YAML stream: a
top-level array becomes one document per element, anything else a single
document.
"""

import json
from typing import Any

import _jsonnet

from build_trigger.exceptions import ConversionError
from build_trigger.models import ConvertArgs, Hook, Repository, Template

DEFAULT_MAX_STACK = 500
DEFAULT_MAX_TRACE = 20


def build_vars(build: Hook) -> dict[str, str]:
    ext_vars = {
        "build.event": build.event,
        "build.link": build.link,
        "build.branch": build.target,
        "build.source": build.source,
        "build.target": build.target,
        "build.before": build.before,
        "build.after": build.after,
        "build.commit": build.after,
        "build.ref": build.ref,
        "build.title": build.title,
        "build.message": build.message,
        "build.sender": build.sender,
        "build.author_login": build.author_login,
        "build.author_name": build.author_name,
        "build.author_email": build.author_email,
        "build.author_avatar": build.author_avatar,
    }
    for key, value in build.params.items():
        ext_vars[f"build.params.{key}"] = value
    return ext_vars


def repo_vars(repo: Repository) -> dict[str, str]:
    return {
        "repo.slug": repo.slug,
        "repo.namespace": repo.namespace,
        "repo.name": repo.name,
        "repo.branch": repo.branch,
        "repo.config": repo.config_path,
        "repo.link": repo.link,
        "repo.git_http_url": repo.http_url,
    }


def input_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True)


def _reject_import(base: str, rel: str):
    raise RuntimeError(f"imports are not supported: {rel}")


def evaluate(
    filename: str,
    source: str,
    ext_vars: dict[str, str],
    max_stack: int = DEFAULT_MAX_STACK,
    max_trace: int = DEFAULT_MAX_TRACE,
) -> str:
    """Evaluate a jsonnet snippet to its JSON manifestation."""
    try:
        return _jsonnet.evaluate_snippet(
            filename,
            source,
            ext_vars=ext_vars,
            max_stack=max_stack,
            max_trace=max_trace,
            import_callback=_reject_import,
        )
    except RuntimeError as e:
        raise ConversionError(str(e).strip()) from e


def evaluate_stream(
    filename: str,
    source: str,
    ext_vars: dict[str, str],
    max_stack: int = DEFAULT_MAX_STACK,
    max_trace: int = DEFAULT_MAX_TRACE,
) -> list[str]:
    output = evaluate(filename, source, ext_vars, max_stack, max_trace)
    value = json.loads(output)
    if not isinstance(value, list):
        return [output]

    # JSON is valid jsonnet, so each element is manifested by the evaluator
    # itself and keeps its formatting.
    return [
        evaluate(f"{filename}[{index}]", json.dumps(item), {})
        for index, item in enumerate(value)
    ]


def parse(
    args: ConvertArgs,
    template: Template | None = None,
    template_data: dict[str, Any] | None = None,
    max_stack: int = DEFAULT_MAX_STACK,
    max_trace: int = DEFAULT_MAX_TRACE,
) -> str:
    """
    Render a jsonnet document into a YAML stream.

    When ``template`` is given its text is evaluated with ``template_data``
    bound as ``input.<name>`` variables; otherwise the configuration source
    in ``args`` is evaluated directly.

    Raises:
        ConversionError: the document failed to evaluate
    """
    ext_vars = build_vars(args.build)
    ext_vars.update(repo_vars(args.repo))

    if template is not None:
        filename, source = template.name, template.data
    else:
        filename, source = args.config.path, args.config.data

    for key, value in (template_data or {}).items():
        ext_vars[f"input.{key}"] = input_value(value)

    docs = evaluate_stream(filename, source, ext_vars, max_stack, max_trace)
    return "".join(f"---\n{doc}" for doc in docs)
