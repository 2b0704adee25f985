import os
import re

from pydantic import Field, ValidationError

from ...entities.exceptions import ConfigurationError
from ._base import BaseConfig as _BaseConfig
from ._build import BuildConfig
from ._build import ImageSourceConfig as ImageSourceConfig
from ._build import PlacementConfig
from ._build import TimeoutsConfig
from ._logging import FileLoggingConfig as FileLoggingConfig
from ._logging import LoggingConfig
from ._lxd import AuthConfig as AuthConfig
from ._lxd import CertificateAuthConfig as CertificateAuthConfig
from ._lxd import LxdConfig
from ._lxd import Pkcs12AuthConfig as Pkcs12AuthConfig
from ._lxd import TokenAuthConfig as TokenAuthConfig

_UNRESOLVED_VARIABLE = re.compile(r"\$\{(\w+)\}")


def _unresolved_variables(node):
    if isinstance(node, str):
        yield from _UNRESOLVED_VARIABLE.findall(node)
    elif isinstance(node, dict):
        for value in node.values():
            yield from _unresolved_variables(value)
    elif isinstance(node, list):
        for value in node:
            yield from _unresolved_variables(value)


class AppConfig(_BaseConfig):
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    lxd: LxdConfig = Field(...)
    placement: PlacementConfig = Field(default_factory=PlacementConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)

    @staticmethod
    def from_yaml(yaml_content: str, *, overrides: dict | None = None) -> 'AppConfig':
        import yaml
        data = yaml.safe_load(os.path.expandvars(yaml_content)) or {}
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be a YAML mapping")

        for dotted_key, value in (overrides or {}).items():
            if value is None:
                continue

            node = data
            *parents, leaf = dotted_key.split(".")
            for parent in parents:
                if node.get(parent) is None:
                    node[parent] = {}
                node = node[parent]
            node[leaf] = value

        # checked after overrides, a CLI option may replace an unset variable
        missing = sorted(set(_unresolved_variables(data)))
        if missing:
            raise ConfigurationError(f"Environment variable(s) not set: {', '.join(missing)}")

        try:
            return AppConfig(**data)
        except ValidationError as validation_error:
            messages = [
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in validation_error.errors()
            ]

            raise ConfigurationError("Invalid configuration: " + "; ".join(messages)) from validation_error

    @staticmethod
    def from_file(file_path: str, *, overrides: dict | None = None) -> 'AppConfig':
        try:
            with open(file_path, 'r') as f:
                content = f.read()
        except OSError as error:
            raise ConfigurationError(f"Cannot read configuration file `{file_path}`: {error}") from error

        return AppConfig.from_yaml(content, overrides=overrides)
