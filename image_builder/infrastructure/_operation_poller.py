import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from ..entities import Operation
from ..entities.exceptions import OperationFailedError, OperationTimeoutError
from ..utils.logging_utils import get_logger
from .lxd import LxdClient

logger = get_logger()

DEFAULT_POLL_INTERVAL = 2.0


class PollResult(Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    TIMEOUT = "TIMEOUT"


@dataclass
class PollOutcome:
    result: PollResult
    operation: Operation
    elapsed: float


class OperationPoller:
    """
    Turns LXD's asynchronous operations into a blocking wait.

    The status is fetched every `interval` seconds; between two polls the
    thread sleeps on `stop_event`, so nothing spins.
    """

    def __init__(self,
                 client: LxdClient,
                 interval: float = DEFAULT_POLL_INTERVAL,
                 stop_event: threading.Event | None = None,
                 clock: Callable[[], float] = time.monotonic):
        self.client = client
        self.interval = interval
        self.stop_event = stop_event or threading.Event()
        self.clock = clock

    def fetch(self, operation_id: str, kind: Operation.Kind | None = None) -> Operation:
        operation_id = Operation.normalize_id(operation_id)
        response = self.client.call("GET", f"/operations/{operation_id}")

        operation = Operation.from_api(response.metadata or {}, kind)
        operation.id = operation.id or operation_id
        return operation

    def poll(self, operation_id: str, timeout: float, kind: Operation.Kind | None = None) -> PollOutcome:
        started_at = self.clock()

        while True:
            operation = self.fetch(operation_id, kind)
            elapsed = self.clock() - started_at

            logger.trace("Operation %s is %s after %.1fs", operation.id, operation.status.value, elapsed)

            if operation.status == Operation.Status.SUCCESS:
                return PollOutcome(PollResult.SUCCESS, operation, elapsed)

            if operation.status == Operation.Status.FAILURE:
                return PollOutcome(PollResult.FAILURE, operation, elapsed)

            if elapsed >= timeout:
                return PollOutcome(PollResult.TIMEOUT, operation, elapsed)

            self.stop_event.wait(min(self.interval, max(timeout - elapsed, 0)))

    def wait(self, operation_id: str, timeout: float, kind: Operation.Kind | None = None) -> Operation:
        """
        Block until the operation is terminal.

        Raises:
            OperationFailedError: The server reported a failure, raised as soon as it is seen.
            OperationTimeoutError: Still pending once `timeout` seconds elapsed.
        """
        kind_name = kind.value if kind else None
        logger.debug("Waiting for %s operation %s (timeout %ss)", kind_name or "unknown", operation_id, timeout)

        outcome = self.poll(operation_id, timeout, kind)

        if outcome.result == PollResult.FAILURE:
            raise OperationFailedError(outcome.operation.id, kind_name, outcome.operation.error or "unknown error")

        if outcome.result == PollResult.TIMEOUT:
            raise OperationTimeoutError(outcome.operation.id, kind_name, timeout)

        logger.debug("Operation %s completed in %.1fs", outcome.operation.id, outcome.elapsed)
        return outcome.operation
