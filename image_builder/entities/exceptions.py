class ImageBuilderError(Exception):
    """Base class of every error raised while building an image."""


class ConfigurationError(ImageBuilderError):
    """A required input is missing or invalid. Raised before any remote call."""


class NoEligibleTargetError(ImageBuilderError):

    def __init__(self, group: str, members_seen: int = 0):
        self.group = group
        self.members_seen = members_seen
        super().__init__(f"No cluster member belongs to group `{group}` ({members_seen} member(s) inspected)")


class TransportError(ImageBuilderError):
    """The LXD API could not be reached (DNS, refused connection, TLS handshake, timeout)."""


class APIError(ImageBuilderError):
    """
    The LXD API answered with a non-2xx status.

    The message is LXD's own error text, kept verbatim.
    """

    def __init__(self, status_code: int, message: str, method: str | None = None, endpoint: str | None = None):
        self.status_code = status_code
        self.message = message
        self.method = method
        self.endpoint = endpoint

        location = f" on {method} {endpoint}" if method and endpoint else ""
        super().__init__(f"LXD API error {status_code}{location}: {message}")


class NotFoundError(APIError):
    pass


class OperationFailedError(ImageBuilderError):
    """The server reported a terminal failure for an operation."""

    def __init__(self, operation_id: str, kind: str | None, error: str):
        self.operation_id = operation_id
        self.kind = kind
        self.error = error
        super().__init__(f"Operation {kind or 'unknown'} ({operation_id}) failed: {error}")


class OperationTimeoutError(ImageBuilderError):
    """The operation did not reach a terminal state before the deadline."""

    def __init__(self, operation_id: str, kind: str | None, timeout: float):
        self.operation_id = operation_id
        self.kind = kind
        self.timeout = timeout
        super().__init__(f"Operation {kind or 'unknown'} ({operation_id}) did not complete within {timeout}s")


class CommandFailedError(ImageBuilderError):

    def __init__(self, argv: list[str], exit_code: int, stdout: str = "", stderr: str = ""):
        self.argv = argv
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr

        message = f"Command {_summarize_argv(argv)} exited with code {exit_code}"
        if stderr.strip():
            message += f"\n--- stderr ---\n{stderr.rstrip()}"
        if stdout.strip():
            message += f"\n--- stdout ---\n{_tail(stdout)}"

        super().__init__(message)


class InstanceNotReadyError(ImageBuilderError):

    def __init__(self, instance_name: str, attempts: int):
        self.instance_name = instance_name
        self.attempts = attempts
        super().__init__(f"Instance {instance_name} did not reach a ready system state after {attempts} check(s)")


class PublishVerificationError(ImageBuilderError):
    """The publish operation succeeded but the alias does not resolve afterwards."""

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__(f"Image published but alias `{alias}` does not resolve to a fingerprint")


class CleanupError(ImageBuilderError):
    """Teardown of the disposable instance failed. Only ever logged."""

    def __init__(self, instance_name: str, cause: Exception):
        self.instance_name = instance_name
        self.cause = cause
        super().__init__(f"Cleanup of instance {instance_name} failed: {cause}")


class BuildInterrupted(ImageBuilderError):

    def __init__(self, signal_name: str):
        self.signal_name = signal_name
        super().__init__(f"Build interrupted by {signal_name}")


def _summarize_argv(argv: list[str], limit: int = 120) -> str:
    text = " ".join(argv)
    text = " ".join(text.split())
    if len(text) > limit:
        text = text[:limit - 3] + "..."
    return f"`{text}`"


def _tail(text: str, lines: int = 20) -> str:
    return "\n".join(text.rstrip().splitlines()[-lines:])
