import posixpath
from pathlib import Path
from urllib.parse import quote

import requests

from ..entities import Command, Instance, TimeoutClass
from ..entities.exceptions import TransportError
from ..infrastructure.lxd import LxdClient
from ..utils.logging_utils import get_logger
from .command_executor import CommandExecutor

logger = get_logger()

DOWNLOAD_TIMEOUT = 60


class FileDeployer:
    """
    Pushes files into the instance with `POST /instances/{name}/files`.

    The parent directory is created first with `mkdir -p`, then the content
    overwrites the destination. There is no diffing, a push is always a full write.
    """

    def __init__(self, client: LxdClient, executor: CommandExecutor, instance_path: str = "instances"):
        self._client = client
        self._executor = executor
        self._instance_path = instance_path

    def push(self, instance: Instance, local_path: str | Path, remote_path: str, mode: str | None = None, uid: int | None = None, gid: int | None = None) -> None:
        content = Path(local_path).read_bytes()

        logger.info("Pushing %s to %s:%s", local_path, instance.name, remote_path)
        self.push_bytes(instance, content, remote_path, mode=mode, uid=uid, gid=gid)

    def push_url(self, instance: Instance, url: str, remote_path: str, mode: str | None = None, uid: int | None = None, gid: int | None = None) -> None:
        logger.info("Downloading %s", url)

        try:
            response = requests.get(url, timeout=DOWNLOAD_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            raise TransportError(f"Download of {url} failed: {e}") from e

        logger.info("Pushing %s to %s:%s", url, instance.name, remote_path)
        self.push_bytes(instance, response.content, remote_path, mode=mode, uid=uid, gid=gid)

    def push_bytes(self, instance: Instance, content: bytes, remote_path: str, mode: str | None = None, uid: int | None = None, gid: int | None = None) -> None:
        self.ensure_directory(instance, posixpath.dirname(remote_path))

        headers = {
            "X-LXD-type": "file",
            "X-LXD-write": "overwrite",
        }
        if mode is not None:
            headers["X-LXD-mode"] = mode
        if uid is not None:
            headers["X-LXD-uid"] = str(uid)
        if gid is not None:
            headers["X-LXD-gid"] = str(gid)

        endpoint = f"/{self._instance_path}/{instance.name}/files?path={quote(remote_path, safe='/')}"
        self._client.call("POST", endpoint, data=content, headers=headers)

        logger.debug("Wrote %d bytes to %s:%s", len(content), instance.name, remote_path)

    def ensure_directory(self, instance: Instance, directory: str) -> None:
        if not directory or directory == "/":
            return

        # `mkdir -p` succeeds when the directory already exists, any failure is a real one
        self._executor.execute(instance, Command.of("mkdir", "-p", "--", directory, timeout=TimeoutClass.SHORT))
