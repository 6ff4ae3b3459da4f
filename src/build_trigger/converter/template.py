from typing import Any

import yaml
from pydantic import BaseModel, ValidationError
from sanic.log import logger

from build_trigger.exceptions import ConversionError, NotFoundError
from build_trigger.interfaces import TemplateStore
from build_trigger.models import Template

TEMPLATE_KIND = "template"


class TemplateArgs(BaseModel):
    kind: str
    load: str
    data: dict[str, Any] = {}


def find_template_args(data: str) -> TemplateArgs | None:
    """
    Find the template resource in a YAML configuration document.

    Returns None when the document is not YAML or holds no resource of kind
    ``template``.
    """
    try:
        documents = list(yaml.safe_load_all(data))
    except yaml.YAMLError as e:
        logger.debug("Configuration is not a YAML document: %s", e)
        return None

    for document in documents:
        if not isinstance(document, dict):
            continue
        if document.get("kind") != TEMPLATE_KIND:
            continue
        try:
            return TemplateArgs.model_validate(document)
        except ValidationError as e:
            raise ConversionError(f"invalid template resource: {e}") from e

    return None


def load_template(
    templates: TemplateStore | None, name: str, namespace: str
) -> Template:
    if templates is None:
        raise ConversionError(f"template {name} not found: no template store")
    try:
        return templates.find(name, namespace)
    except NotFoundError as e:
        raise ConversionError(f"template {name} not found") from e
