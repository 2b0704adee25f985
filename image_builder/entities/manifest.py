"""
Provisioning manifest.

The provisioning payload is versioned data, not orchestrator logic: an ordered
list of command and file steps loaded from YAML. File sources are resolved
relative to the manifest's own directory.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .command import Command, TimeoutClass
from .exceptions import ConfigurationError


class _ManifestModel(BaseModel):
    model_config = ConfigDict(
        extra='forbid',
        populate_by_name=True,
        alias_generator=lambda string: string.replace('_', '-'),
    )


class CommandStep(_ManifestModel):
    type: Literal["command"] = "command"
    name: str = Field(..., description="Human readable step name, logged before execution")
    run: Optional[str] = Field(None, description="Shell script executed with `bash -c`")
    argv: Optional[List[str]] = Field(None, description="Program and arguments executed without a shell")
    environment: Dict[str, str] = Field(default_factory=dict)
    timeout: Union[Literal["short", "long"], int] = Field("short", description="Timeout class or explicit number of seconds")
    strict: bool = Field(True, description="Prefix shell scripts with `set -euo pipefail`")

    @model_validator(mode="after")
    def exactly_one_of_run_or_argv(self):
        if (self.run is None) == (self.argv is None):
            raise ValueError("command step requires exactly one of `run` or `argv`")
        if self.argv is not None and not self.argv:
            raise ValueError("`argv` must not be empty")
        return self

    def to_command(self) -> Command:
        timeout = TimeoutClass(self.timeout) if isinstance(self.timeout, str) else self.timeout

        if self.run is not None:
            return Command.shell(self.run, environment=self.environment, timeout=timeout, strict=self.strict)

        return Command.of(*self.argv, environment=self.environment, timeout=timeout)


class FileStep(_ManifestModel):
    type: Literal["file"] = "file"
    name: str = Field(..., description="Human readable step name, logged before execution")
    source: Optional[str] = Field(None, description="Local file, relative to the manifest directory")
    url: Optional[str] = Field(None, description="Remote file downloaded by the orchestrator before pushing")
    destination: str = Field(..., description="Absolute path inside the instance")
    mode: Optional[str] = Field(None, description="Octal file mode, e.g. `0644`")
    uid: Optional[int] = Field(None)
    gid: Optional[int] = Field(None)

    @field_validator("destination")
    def destination_is_absolute(cls, v: str):
        if not v.startswith("/"):
            raise ValueError("destination must be an absolute path")
        return v

    @field_validator("mode")
    def mode_is_octal(cls, v: str | None):
        if v is None:
            return v
        try:
            int(v, 8)
        except ValueError:
            raise ValueError(f"mode `{v}` is not an octal number")
        return v

    @model_validator(mode="after")
    def exactly_one_of_source_or_url(self):
        if (self.source is None) == (self.url is None):
            raise ValueError("file step requires exactly one of `source` or `url`")
        return self


ProvisioningStep = Annotated[Union[CommandStep, FileStep], Field(discriminator="type")]


class ProvisioningManifest(_ManifestModel):
    version: Literal[1] = 1
    steps: List[ProvisioningStep] = Field(default_factory=list)

    base_dir: Path = Field(Path("."), exclude=True)

    def resolve_source(self, step: FileStep) -> Path:
        path = Path(step.source)
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    def missing_sources(self) -> list[Path]:
        return [
            self.resolve_source(step)
            for step in self.steps
            if isinstance(step, FileStep) and step.source is not None and not self.resolve_source(step).is_file()
        ]

    @staticmethod
    def from_yaml(yaml_content: str, base_dir: str | os.PathLike = ".") -> ProvisioningManifest:
        import yaml

        try:
            data = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as error:
            raise ConfigurationError(f"Manifest is not valid YAML: {error}") from error

        if not isinstance(data, dict):
            raise ConfigurationError("Manifest must be a YAML mapping")

        try:
            return ProvisioningManifest(**data, base_dir=Path(base_dir))
        except ValidationError as validation_error:
            messages = [
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in validation_error.errors()
            ]

            raise ConfigurationError("Invalid manifest: " + "; ".join(messages)) from validation_error

    @staticmethod
    def from_file(file_path: str | os.PathLike) -> ProvisioningManifest:
        path = Path(file_path)
        try:
            content = path.read_text()
        except OSError as error:
            raise ConfigurationError(f"Cannot read manifest `{file_path}`: {error}") from error

        return ProvisioningManifest.from_yaml(content, base_dir=path.parent)
