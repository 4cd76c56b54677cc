from pydantic import BaseModel, ConfigDict, Field


class Secret(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    data: dict[str, bytes] = Field(default_factory=dict)


class ConfigMap(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    data: dict[str, str] = Field(default_factory=dict)
