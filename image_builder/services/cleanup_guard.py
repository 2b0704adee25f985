import threading

from ..entities import Instance
from ..entities.exceptions import CleanupError
from ..utils.logging_utils import get_logger
from .instance_lifecycle import InstanceLifecycleManager

logger = get_logger()


class CleanupGuard:
    """
    Scoped ownership of the disposable instance.

    `release()` stops then deletes the instance exactly once, whatever state
    it is in; later or concurrent calls return immediately. Leaving the
    `with` block releases it on every exit path and never replaces the
    exception that is propagating.
    """

    def __init__(self, lifecycle: InstanceLifecycleManager, instance: Instance):
        self._lifecycle = lifecycle
        self.instance = instance

        self._lock = threading.Lock()
        self._released = False
        self._releasing = False
        self._closing = False
        self.error: CleanupError | None = None

    @property
    def released(self) -> bool:
        return self._released

    @property
    def releasing(self) -> bool:
        return self._releasing

    @property
    def closing(self) -> bool:
        """True from the moment cleanup is requested, before the lock is taken."""
        return self._closing

    def release(self) -> bool:
        """
        Returns True when the instance is known to be gone.

        Failures are captured in `self.error` and logged, never raised.
        """
        self._closing = True

        if not self._lock.acquire(blocking=False):
            logger.debug("Cleanup of %s already in progress", self.instance.name)
            return False

        try:
            if self._released:
                return self.error is None

            self._releasing = True
            try:
                self._teardown()
            except Exception as exception:
                self.error = CleanupError(self.instance.name, exception)
                logger.warning("%s", self.error)
            finally:
                self._released = True
                self._releasing = False

            return self.error is None
        finally:
            self._lock.release()

    def _teardown(self) -> None:
        instance = self.instance

        try:
            status = self._lifecycle.get_status(instance)
            if status is not None and status.lower() not in ("stopped", "stopping"):
                self._lifecycle.stop(instance, force=True)
        except Exception as exception:
            # a failed stop must not prevent the delete attempt
            logger.warning("Could not stop instance %s: %s", instance.name, exception)

        self._lifecycle.delete(instance)

    def __enter__(self) -> 'CleanupGuard':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        self._closing = True

        if exc_type is not None:
            logger.warning("Cleaning up instance %s after %s", self.instance.name, exc_type.__name__)

        self.release()
        return False
