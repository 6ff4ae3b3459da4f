import re

import aiohttp
from sanic.log import logger

from build_trigger import scm
from build_trigger.config import Config
from build_trigger.converter import Converter
from build_trigger.exceptions import SchedulerError
from build_trigger.gitlab.models import PipelineTriggerData
from build_trigger.interfaces import FileService, UserStore
from build_trigger.models import Build, ConfigSource, ConvertArgs, Hook, Repository
from build_trigger.signature import Signature


def param_variable(key: str) -> str:
    return "PARAM_" + re.sub(r"[^A-Za-z0-9_]", "_", key).upper()


class GitLabTriggerer:
    """Schedules builds as pipelines of the configured GitLab trigger project."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: Config,
        users: UserStore,
        files: FileService,
        converter: Converter,
    ):
        self.session = session
        self.config = config
        self.users = users
        self.files = files
        self.converter = converter

    async def resolve_config(self, repo: Repository, hook: Hook) -> str:
        owner = await self.users.find(repo.user_id)
        logger.debug(
            "Fetching %s of %s at %s", repo.config_path, repo.slug, hook.after
        )
        raw = await self.files.find(owner, repo.slug, hook.after, repo.config_path)
        args = ConvertArgs(
            repo=repo,
            build=hook,
            config=ConfigSource(path=repo.config_path, data=raw),
        )
        return self.converter.convert(args)

    def pipeline_variables(
        self, repo: Repository, hook: Hook, pipeline_config: str
    ) -> dict[str, str]:
        data = PipelineTriggerData(
            repo_slug=repo.slug,
            repo_link=repo.link,
            config_path=repo.config_path,
            head_sha=hook.after,
            head_ref=scm.trim_ref(hook.ref),
            hook=hook,
        )
        payload = data.model_dump_json()
        signature = Signature(self.config.TRIGGER_SECRET).create(payload)

        variables = {
            "BRIDGE_PAYLOAD": payload,
            "TRIGGER_SIGNATURE": signature,
            "PIPELINE_CONFIG": pipeline_config,
            "REPO_SLUG": repo.slug,
            "HEAD_SHA": data.head_sha,
            "HEAD_REF": data.head_ref,
            "BUILD_EVENT": hook.event,
        }
        for key, value in hook.params.items():
            variables[param_variable(key)] = value
        return variables

    async def trigger(self, repo: Repository, hook: Hook) -> Build:
        pipeline_config = await self.resolve_config(repo, hook)
        variables = self.pipeline_variables(repo, hook, pipeline_config)

        if self.config.STERILE:
            logger.debug("Sterile mode: skipping pipeline trigger")
            return Build(
                id=0, status="skipped", ref=hook.ref, sha=hook.after, web_url=hook.link
            )

        data = {
            "token": self.config.GITLAB_PIPELINE_TRIGGER_TOKEN,
            "ref": self.config.GITLAB_TRIGGER_REF,
        }
        for key, value in variables.items():
            data[f"variables[{key}]"] = value

        logger.debug("Triggering pipeline on gitlab")
        async with self.session.post(self.config.GITLAB_TRIGGER_URL, data=data) as resp:
            if resp.status == 422:
                info = await resp.json()
                message = "Unknown error"
                try:
                    message = info["message"]["base"]
                except (KeyError, TypeError):
                    pass
                logger.debug("Pipeline was not created: %s", message)
                raise SchedulerError(f"Pipeline was not created: {message}")

            resp.raise_for_status()
            pipeline = await resp.json()

        logger.debug("Triggered pipeline %s on gitlab", pipeline.get("id"))
        return Build.model_validate(pipeline)
