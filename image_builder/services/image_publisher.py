from ..entities import Image, Instance, Operation
from ..entities.exceptions import NotFoundError, PublishVerificationError
from ..infrastructure import OperationPoller
from ..infrastructure.lxd import LxdClient
from ..utils.logging_utils import get_logger

logger = get_logger()


class ImagePublisher:
    """
    Publishes the stopped instance as an image under an alias.

    Publishing is last-publish-wins: the image currently owning the alias is
    deleted before the new one is created. The two steps are not atomic, two
    runs publishing the same alias concurrently can race between them.
    """

    def __init__(self, client: LxdClient, poller: OperationPoller, publish_timeout: int = 900, delete_timeout: int = 60):
        self._client = client
        self._poller = poller
        self._publish_timeout = publish_timeout
        self._delete_timeout = delete_timeout

    def resolve(self, alias: str) -> str | None:
        """Fingerprint currently bound to `alias`, None when the alias does not exist."""
        try:
            response = self._client.call("GET", f"/images/aliases/{alias}")
        except NotFoundError:
            return None

        return (response.metadata or {}).get("target") or None

    def retire(self, alias: str) -> str | None:
        """Delete the image owning `alias`, if any. Returns the deleted fingerprint."""
        fingerprint = self.resolve(alias)
        if fingerprint is None:
            logger.debug("No existing image for alias %s", alias)
            return None

        logger.info("Deleting previous image %s of alias %s", fingerprint[:12], alias)
        try:
            response = self._client.call("DELETE", f"/images/{fingerprint}")
        except NotFoundError:
            return fingerprint

        if response.operation_id:
            self._poller.wait(response.operation_id, self._delete_timeout, Operation.Kind.DELETE)
        return fingerprint

    def publish(self, instance: Instance, alias: str, description: str, properties: dict[str, str] | None = None, public: bool = False) -> Image:
        """
        Raises:
            OperationFailedError / OperationTimeoutError: the publish request itself failed.
            PublishVerificationError: the request succeeded but the alias does not resolve afterwards.
        """
        self.retire(alias)

        properties = {"description": description, **(properties or {})}
        payload = {
            "source": {
                "type": "instance",
                "name": instance.name,
            },
            "properties": properties,
            "public": public,
            "aliases": [{"name": alias, "description": description}],
        }

        logger.info("Publishing instance %s as image %s", instance.name, alias)
        response = self._client.call("POST", "/images", payload)
        operation = self._poller.wait(response.operation_id, self._publish_timeout, Operation.Kind.PUBLISH)

        fingerprint = self.resolve(alias)
        if not fingerprint:
            raise PublishVerificationError(alias)

        published = operation.metadata.get("fingerprint")
        if published and published != fingerprint:
            logger.warning("Alias %s resolves to %s but the publish operation reported %s", alias, fingerprint[:12], published[:12])

        logger.info("Image %s published with fingerprint %s", alias, fingerprint[:12])
        return Image(
            alias=alias,
            fingerprint=fingerprint,
            source_instance=instance.name,
            description=description,
            properties=properties,
        )
