from typing import Literal

from pydantic_settings import BaseSettings
from sanic.log import logger


class Config(BaseSettings):
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_REQUESTER: str = "build-trigger"

    GITLAB_ACCESS_TOKEN: str
    GITLAB_PIPELINE_TRIGGER_TOKEN: str
    GITLAB_TRIGGER_URL: str
    GITLAB_API_URL: str
    GITLAB_PROJECT_ID: int
    GITLAB_TRIGGER_REF: str = "main"

    TRIGGER_SECRET: bytes

    OVERRIDE_LOGGING: Literal[
        "CRITICAL",
        "FATAL",
        "ERROR",
        "WARNING",
        "WARN",
        "INFO",
        "DEBUG",
        "NOTSET",
    ]

    REGISTRY_FILE: str | None = None
    TEMPLATE_DIR: str | None = None

    JSONNET_ENABLED: bool = True
    JSONNET_MAX_STACK: int = 500
    JSONNET_MAX_TRACE: int = 20

    STERILE: bool = False

    def print_config(self):
        """Print configuration values with sensitive attributes masked"""
        sensitive_attrs = {
            "GITLAB_ACCESS_TOKEN",
            "GITLAB_PIPELINE_TRIGGER_TOKEN",
            "TRIGGER_SECRET",
        }

        logger.info("=== Build Trigger Configuration ===")
        for field_name, field_value in self.model_dump().items():
            if field_name in sensitive_attrs:
                if isinstance(field_value, bytes):
                    logger.info(f"{field_name}: *** (bytes)")
                else:
                    logger.info(f"{field_name}: ***")
            else:
                logger.info(f"{field_name}: {field_value}")
        logger.info("===================================")
