import time
from typing import Callable

from ..configuration import BuildConfig, TimeoutsConfig
from ..entities import Command, Instance, Operation
from ..entities.exceptions import NotFoundError, OperationFailedError
from ..infrastructure import OperationPoller
from ..infrastructure.lxd import LxdClient
from ..utils.logging_utils import get_logger
from .command_executor import CommandExecutor

logger = get_logger()

READINESS_CHECK = Command.shell(
    "systemctl is-system-running --wait 2>/dev/null | grep -qE '^(running|degraded)$'",
    strict=False,
)


class InstanceLifecycleManager:
    """
    Creates, starts, stops and deletes the disposable instance of a run.

    Each action submits a request, then waits on the returned operation; the
    instance's state is only updated once the operation succeeded.
    """

    def __init__(
        self,
        client: LxdClient,
        poller: OperationPoller,
        executor: CommandExecutor,
        timeouts: TimeoutsConfig,
        build_config: BuildConfig,
        instance_path: str = "instances",
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._client = client
        self._poller = poller
        self._executor = executor
        self._timeouts = timeouts
        self._build_config = build_config
        self._instance_path = instance_path
        self._sleep = sleep

    def _endpoint(self, instance: Instance, suffix: str = "") -> str:
        return f"/{self._instance_path}/{instance.name}{suffix}"

    def _wait(self, response, timeout: float, kind: Operation.Kind) -> Operation | None:
        if not response.operation_id:
            return None
        return self._poller.wait(response.operation_id, timeout, kind)

    def create(self, name: str, image_source: dict, target: str | None = None) -> Instance:
        """
        Create the instance from `image_source`, e.g. `{"type": "image", "alias": "ubuntu/24.04"}`.
        """
        instance = Instance(name=name, target=target)

        payload = {
            "name": name,
            "type": "container",
            "source": image_source,
            "config": {},
            "devices": {},
        }
        params = {"target": target} if target else None

        logger.info("Creating instance %s from %s%s", name, image_source.get("alias"), f" on {target}" if target else "")
        response = self._client.call("POST", f"/{self._instance_path}", payload, params=params)
        self._wait(response, self._timeouts.create, Operation.Kind.CREATE)

        instance.state = Instance.State.CREATED
        return instance

    def _change_state(self, instance: Instance, action: str, timeout: float, force: bool, kind: Operation.Kind) -> None:
        payload = {
            "action": action,
            "timeout": self._timeouts.stop_action,
            "force": force,
        }

        response = self._client.call("PUT", self._endpoint(instance, "/state"), payload)
        self._wait(response, timeout, kind)

    def start(self, instance: Instance, timeout: float | None = None) -> None:
        logger.info("Starting instance %s", instance.name)
        self._change_state(instance, "start", timeout if timeout is not None else self._timeouts.state_change, False, Operation.Kind.START)
        instance.state = Instance.State.RUNNING

        grace = self._build_config.start_grace_period
        if grace > 0:
            logger.debug("Waiting %ss for %s to boot", grace, instance.name)
            self._sleep(grace)

    def wait_until_ready(self, instance: Instance) -> bool:
        """
        Query the guest's init system until it reports `running` or `degraded`.
        """
        attempts = self._build_config.ready_attempts

        for attempt in range(1, attempts + 1):
            execution = self._executor.execute(instance, READINESS_CHECK, check=False, capture_output=False)
            if execution.succeeded:
                logger.info("Instance %s is ready", instance.name)
                return True

            logger.debug("Instance %s not ready yet (attempt %d/%d)", instance.name, attempt, attempts)
            if attempt < attempts:
                self._sleep(self._build_config.ready_interval)

        return False

    def stop(self, instance: Instance, timeout: float | None = None, force: bool = False) -> None:
        logger.info("Stopping instance %s%s", instance.name, " (forced)" if force else "")
        self._change_state(instance, "stop", timeout if timeout is not None else self._timeouts.state_change, force, Operation.Kind.STOP)
        instance.state = Instance.State.STOPPED

    def get_status(self, instance: Instance) -> str | None:
        """Server side status, e.g. `Running` or `Stopped`; None when the instance does not exist."""
        try:
            response = self._client.call("GET", self._endpoint(instance))
        except NotFoundError:
            return None

        return (response.metadata or {}).get("status")

    def exists(self, instance: Instance) -> bool:
        return self.get_status(instance) is not None

    def delete(self, instance: Instance) -> None:
        """
        Delete the instance. An instance that is already gone counts as deleted.
        """
        logger.info("Deleting instance %s", instance.name)

        try:
            response = self._client.call("DELETE", self._endpoint(instance))
            self._wait(response, self._timeouts.delete, Operation.Kind.DELETE)
        except NotFoundError:
            logger.debug("Instance %s is already absent", instance.name)
        except OperationFailedError as error:
            if "not found" not in error.error.lower():
                raise
            logger.debug("Instance %s vanished during deletion", instance.name)

        instance.state = Instance.State.DELETED
