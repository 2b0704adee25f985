from typing import Dict, Optional

from pydantic import Field

from ._base import BaseConfig as _BaseConfig


class ImageSourceConfig(_BaseConfig):
    alias: str = Field("ubuntu/24.04", description="Alias of the base image the disposable instance is created from")
    server: Optional[str] = Field(None, description="Remote image server, e.g. https://images.lxd.canonical.com; local image store when unset")
    protocol: str = Field("simplestreams", description="Protocol of the remote image server")


class PlacementConfig(_BaseConfig):
    group: Optional[str] = Field(None, description="Cluster group the build instance must be placed in; standalone server when unset")
    online_only: bool = Field(True, description="Only consider cluster members reporting an Online status")


class BuildConfig(_BaseConfig):
    image_source: ImageSourceConfig = Field(default_factory=ImageSourceConfig)
    instance_name_prefix: str = Field("build", description="Prefix of the generated disposable instance name")
    description_format: str = Field("{name} - Built by image-builder", description="Description of the published image, use {name} for the image alias")
    properties: Dict[str, str] = Field(default_factory=lambda: {"os": "ubuntu", "release": "24.04"}, description="Extra properties attached to the published image")
    public: bool = Field(False, description="Whether the published image is public")
    start_grace_period: float = Field(10, description="Seconds to wait after start before probing the guest")
    ready_attempts: int = Field(30, description="Number of readiness checks before giving up")
    ready_interval: float = Field(2, description="Seconds between readiness checks")
    manifest: Optional[str] = Field(None, description="Path to the provisioning manifest")

    def format_description(self, name: str) -> str:
        return self.description_format.format(name=name)


class TimeoutsConfig(_BaseConfig):
    poll_interval: float = Field(2, description="Seconds between two polls of an operation")
    create: int = Field(300, description="Timeout for instance creation")
    state_change: int = Field(300, description="Timeout for start/stop operations")
    stop_action: int = Field(30, description="Timeout handed to LXD for the stop action itself")
    short_command: int = Field(120, description="Timeout for short administrative commands")
    long_command: int = Field(600, description="Timeout for long running commands such as package installation")
    publish: int = Field(900, description="Timeout for publishing the image")
    delete: int = Field(60, description="Timeout for instance and image deletions")
