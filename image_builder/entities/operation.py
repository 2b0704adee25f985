from enum import Enum

# LXD status codes, see https://documentation.ubuntu.com/lxd/en/latest/rest-api/#list-of-current-status-codes
_SUCCESS_CODES = {200}
_FAILURE_CODES = {400, 401}


class Operation:
    """
    A server side asynchronous task. Only referenced until it reaches a terminal status.
    """

    class Kind(Enum):
        CREATE = "create"
        START = "start"
        STOP = "stop"
        EXEC = "exec"
        PUBLISH = "publish"
        DELETE = "delete"

    class Status(Enum):
        PENDING = "PENDING"
        SUCCESS = "SUCCESS"
        FAILURE = "FAILURE"

    def __init__(
        self,
        id: str,
        kind: Kind | None = None,
        status: Status = Status.PENDING,
        metadata: dict | None = None,
        error: str | None = None,
        description: str = "",
    ):
        self.id = id
        self.kind = kind
        self.status = status
        self.metadata = metadata or {}
        self.error = error
        self.description = description

    @property
    def is_terminal(self) -> bool:
        return self.status != Operation.Status.PENDING

    @staticmethod
    def normalize_id(operation: str) -> str:
        """Accepts both `abc-123` and `/1.0/operations/abc-123`."""
        return operation.rstrip("/").rsplit("/", 1)[-1]

    @staticmethod
    def from_api(data: dict, kind: Kind | None = None) -> 'Operation':
        status_code = data.get("status_code")
        if status_code in _SUCCESS_CODES:
            status = Operation.Status.SUCCESS
        elif status_code in _FAILURE_CODES:
            status = Operation.Status.FAILURE
        else:
            status = Operation.Status.PENDING

        error = data.get("err") or None
        if status == Operation.Status.FAILURE and not error:
            error = data.get("status") or "unknown error"

        return Operation(
            id=data.get("id", ""),
            kind=kind,
            status=status,
            metadata=data.get("metadata") or {},
            error=error,
            description=data.get("description", ""),
        )

    def __repr__(self):
        kind = self.kind.value if self.kind else None
        return f"Operation(id={self.id!r}, kind={kind!r}, status={self.status.value})"
