from dataclasses import dataclass, field


@dataclass(frozen=True)
class ClusterMember:
    name: str
    groups: tuple[str, ...] = field(default_factory=tuple)
    status: str = ""

    @staticmethod
    def from_api(data: dict) -> 'ClusterMember':
        return ClusterMember(
            name=data.get("server_name") or data.get("name", ""),
            groups=tuple(data.get("groups") or ()),
            status=data.get("status", ""),
        )

    def is_online(self) -> bool:
        return self.status.lower() == "online"
