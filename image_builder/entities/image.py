from dataclasses import dataclass, field


@dataclass
class Image:
    alias: str
    fingerprint: str
    source_instance: str
    description: str = ""
    properties: dict[str, str] = field(default_factory=dict)
