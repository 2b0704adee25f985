from ..entities import Command, CommandExecution, Instance, Operation, TimeoutClass
from ..entities.exceptions import CommandFailedError, NotFoundError
from ..infrastructure import OperationPoller
from ..infrastructure.lxd import LxdClient
from ..utils.logging_utils import get_logger

logger = get_logger()

# LXD file descriptor keys of the recorded output logs
_STDOUT_KEY = "1"
_STDERR_KEY = "2"


class CommandExecutor:
    """
    Runs commands inside the instance through `POST /instances/{name}/exec`.

    Output is recorded server side; it is only downloaded when the command
    fails, so the raised error is diagnosable without entering the instance.
    """

    def __init__(
        self,
        client: LxdClient,
        poller: OperationPoller,
        instance_path: str = "instances",
        short_timeout: int = 120,
        long_timeout: int = 600,
    ):
        self._client = client
        self._poller = poller
        self._instance_path = instance_path
        self._timeouts = {
            TimeoutClass.SHORT: short_timeout,
            TimeoutClass.LONG: long_timeout,
        }

    def resolve_timeout(self, command: Command) -> int:
        if isinstance(command.timeout, TimeoutClass):
            return self._timeouts[command.timeout]
        return int(command.timeout)

    def execute(
        self,
        instance: Instance,
        command: Command,
        timeout: int | None = None,
        check: bool = True,
        capture_output: bool = True,
    ) -> CommandExecution:
        """
        Execute `command` and wait for it to exit.

        Raises:
            CommandFailedError: exit code is not 0 and `check` is set, with the captured stdout/stderr.
            OperationFailedError / OperationTimeoutError: the exec operation itself failed or never finished.
        """
        timeout = timeout if timeout is not None else self.resolve_timeout(command)

        payload = {
            "command": list(command.argv),
            "environment": dict(command.environment),
            "wait-for-websocket": False,
            "interactive": False,
            "record-output": capture_output,
        }

        response = self._client.call("POST", f"/{self._instance_path}/{instance.name}/exec", payload)
        operation = self._poller.wait(response.operation_id, timeout, Operation.Kind.EXEC)

        exit_code = int(operation.metadata.get("return", -1))
        execution = CommandExecution(command=command, exit_code=exit_code)

        if execution.succeeded:
            logger.debug("Command %s exited with 0", command.argv[0])
            return execution

        if capture_output:
            outputs = operation.metadata.get("output") or {}
            execution.stdout = self._read_output(outputs.get(_STDOUT_KEY))
            execution.stderr = self._read_output(outputs.get(_STDERR_KEY))

        if check:
            raise CommandFailedError(list(command.argv), exit_code, execution.stdout, execution.stderr)

        logger.debug("Command %s exited with %d", command.argv[0], exit_code)
        return execution

    def _read_output(self, path: str | None) -> str:
        if not path:
            return ""

        try:
            return self._client.get_raw(path)
        except NotFoundError:
            logger.warning("Recorded output %s is not available", path)
            return ""
