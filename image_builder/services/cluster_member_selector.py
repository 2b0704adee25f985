from ..entities import ClusterMember
from ..entities.exceptions import NoEligibleTargetError
from ..infrastructure.lxd import LxdClient
from ..utils.logging_utils import get_logger

logger = get_logger()


class ClusterMemberSelector:
    """
    Picks the cluster member the build instance is placed on.

    Selection is reproducible: the first matching member in the order the
    server lists them wins, the list is never re-sorted. It fails closed, an
    empty match never falls back to the server's default placement.
    """

    def __init__(self, client: LxdClient, online_only: bool = True):
        self._client = client
        self._online_only = online_only

    def list_members(self) -> list[ClusterMember]:
        response = self._client.call("GET", "/cluster/members", params={"recursion": 1})
        return [ClusterMember.from_api(member) for member in response.metadata or [] if isinstance(member, dict)]

    def select(self, required_group: str) -> str:
        members = self.list_members()

        eligible = [member for member in members if required_group in member.groups]
        if self._online_only:
            offline = [member.name for member in eligible if not member.is_online()]
            if offline:
                logger.warning("Ignoring offline member(s) of group %s: %s", required_group, ", ".join(offline))
            eligible = [member for member in eligible if member.is_online()]

        if not eligible:
            raise NoEligibleTargetError(required_group, len(members))

        selected = eligible[0]
        logger.info("Selected cluster member %s from group %s (%d eligible)", selected.name, required_group, len(eligible))
        return selected.name
