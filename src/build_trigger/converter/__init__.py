from sanic.log import logger

from build_trigger import metrics
from build_trigger.converter import jsonnet
from build_trigger.converter.template import find_template_args, load_template
from build_trigger.exceptions import ConversionError
from build_trigger.interfaces import TemplateStore
from build_trigger.models import ConvertArgs

JSONNET_EXTENSION = ".jsonnet"
YAML_EXTENSIONS = (".yml", ".yaml")


class Converter:
    """
    Resolve a repository configuration source into plain configuration text.

    ``*.jsonnet`` sources are evaluated directly. YAML sources holding a
    ``kind: template`` resource are rendered from the named template with the
    resource's ``data`` as parameters. Everything else is returned unchanged.
    """

    def __init__(
        self,
        templates: TemplateStore | None = None,
        enabled: bool = True,
        max_stack: int = jsonnet.DEFAULT_MAX_STACK,
        max_trace: int = jsonnet.DEFAULT_MAX_TRACE,
    ):
        self.templates = templates
        self.enabled = enabled
        self.max_stack = max_stack
        self.max_trace = max_trace

    def convert(self, args: ConvertArgs) -> str:
        path = args.config.path

        if not self.enabled:
            logger.debug("Templating disabled, using %s as is", path)
            return self._plain(args)

        if path.endswith(JSONNET_EXTENSION):
            logger.debug("Evaluating %s as jsonnet document", path)
            with metrics.track_conversion("jsonnet"):
                output = jsonnet.parse(
                    args, max_stack=self.max_stack, max_trace=self.max_trace
                )
            metrics.config_conversions_total.labels("jsonnet").inc()
            return output

        if path.endswith(YAML_EXTENSIONS):
            template_args = find_template_args(args.config.data)
            if template_args is not None:
                logger.debug(
                    "Rendering %s from template %s", path, template_args.load
                )
                with metrics.track_conversion("template"):
                    output = self._render_template(
                        args, template_args.load, template_args.data
                    )
                metrics.config_conversions_total.labels("template").inc()
                return output

        return self._plain(args)

    def _plain(self, args: ConvertArgs) -> str:
        metrics.config_conversions_total.labels("plain").inc()
        return args.config.data

    def _render_template(self, args: ConvertArgs, name: str, data: dict) -> str:
        template = load_template(self.templates, name, args.repo.namespace)
        if not template.name.endswith(JSONNET_EXTENSION):
            raise ConversionError(f"template {name} has an unsupported extension")
        return jsonnet.parse(
            args,
            template=template,
            template_data=data,
            max_stack=self.max_stack,
            max_trace=self.max_trace,
        )
