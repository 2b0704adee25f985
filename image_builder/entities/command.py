from dataclasses import dataclass, field
from enum import Enum


class TimeoutClass(Enum):
    SHORT = "short"
    LONG = "long"


@dataclass(frozen=True)
class Command:
    """
    A command executed inside the instance, always as an argv list.

    Shell scripts are wrapped with `shell()` so the whole script is a single
    argument of `bash -c` and never re-tokenized by the orchestrator.
    """

    argv: tuple[str, ...]
    environment: dict[str, str] = field(default_factory=dict)
    timeout: TimeoutClass | int = TimeoutClass.SHORT

    def __post_init__(self):
        if not self.argv:
            raise ValueError("argv must contain at least the program to execute")

        object.__setattr__(self, "argv", tuple(str(arg) for arg in self.argv))

    @staticmethod
    def of(*argv: str, environment: dict[str, str] | None = None, timeout: TimeoutClass | int = TimeoutClass.SHORT) -> 'Command':
        return Command(argv=tuple(argv), environment=dict(environment or {}), timeout=timeout)

    @staticmethod
    def shell(script: str, environment: dict[str, str] | None = None, timeout: TimeoutClass | int = TimeoutClass.SHORT, *, strict: bool = True) -> 'Command':
        if strict:
            script = "set -euo pipefail\n" + script

        return Command(argv=("bash", "-c", script), environment=dict(environment or {}), timeout=timeout)


@dataclass
class CommandExecution:
    command: Command
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0
