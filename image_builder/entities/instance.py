from enum import Enum


class Instance:
    """
    The disposable instance a build provisions. Owned by exactly one run.
    """

    class State(Enum):
        ABSENT = "ABSENT"
        CREATED = "CREATED"
        RUNNING = "RUNNING"
        STOPPED = "STOPPED"
        DELETED = "DELETED"

    def __init__(
        self,
        name: str,
        target: str | None = None,
        state: State = State.ABSENT,
    ):
        """
        :param name: Generated instance name, unique per run.
        :param target: Cluster member the instance is placed on, None for a standalone server.
        :param state: Last known lifecycle state.
        """
        self.name = name
        self.target = target
        self.state = state

    @property
    def is_gone(self) -> bool:
        return self.state in (Instance.State.ABSENT, Instance.State.DELETED)

    def __repr__(self):
        return f"Instance(name={self.name!r}, target={self.target!r}, state={self.state.value})"
