from pydantic import BaseModel

from build_trigger.models import Hook


class PipelineTriggerData(BaseModel):
    repo_slug: str  # owner/repo format
    repo_link: str
    config_path: str
    head_sha: str
    head_ref: str  # branch or tag name
    hook: Hook
