from dataclasses import dataclass
from enum import Enum


class BuildState(Enum):
    INIT = "INIT"
    TARGET_SELECTED = "TARGET_SELECTED"
    INSTANCE_CREATED = "INSTANCE_CREATED"
    INSTANCE_RUNNING = "INSTANCE_RUNNING"
    PROVISIONING = "PROVISIONING"
    INSTANCE_STOPPED = "INSTANCE_STOPPED"
    IMAGE_PUBLISHED = "IMAGE_PUBLISHED"
    INSTANCE_DELETED = "INSTANCE_DELETED"
    DONE = "DONE"
    CLEANUP = "CLEANUP"

    @property
    def is_terminal(self) -> bool:
        return self in (BuildState.INSTANCE_DELETED, BuildState.DONE)


@dataclass
class BuildResult:
    alias: str
    fingerprint: str
    instance_name: str
    target: str | None
    state: BuildState
    duration: float
