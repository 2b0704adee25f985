from pydantic import BaseModel, ConfigDict


class BaseConfig(BaseModel):
    model_config = ConfigDict(
        extra='forbid',
        populate_by_name=True,
        alias_generator=lambda string: string.replace('_', '-'),
    )
