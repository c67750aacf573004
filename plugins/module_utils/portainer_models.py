from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any, ClassVar, TypeVar
from dataclasses import dataclass, field

from .portainer_fields import PortainerFields as PF


M = TypeVar("M", bound="PortainerModel")


class StackType(IntEnum):
    SWARM = 1
    COMPOSE = 2

    @property
    def label(self) -> str:
        return self.name.lower()


class ResourceType(Enum):
    """Resource kinds a resource control can be attached to."""

    CONTAINER = "container"
    SERVICE = "service"
    VOLUME = "volume"
    NETWORK = "network"
    SECRET = "secret"
    CONFIG = "config"
    STACK = "stack"


def stack_type_label(value: int | None) -> str:
    try:
        return StackType(value).label
    except ValueError:
        return ""


class PortainerModel:
    """
    Mapping between Portainer API payloads and dataclass attributes.

    Subclasses declare ``fields_mapping`` (API field -> attribute). Fields that
    need more than a plain copy override ``from_dict``/``to_dict``.
    """

    fields_mapping: ClassVar[dict[str, str]] = {}

    @classmethod
    def from_dict(cls: type[M], data: dict[str, Any]) -> M:
        item = cls()
        item.update_from_dict(data)
        return item

    def update_from_dict(self, data: dict[str, Any]) -> None:
        for k, v in data.items():
            if k in self.fields_mapping:
                setattr(self, self.fields_mapping[k], v)

    def to_dict(self) -> dict[str, Any]:
        data = {}
        for k, v in self.fields_mapping.items():
            value = getattr(self, v)
            if value is None:
                continue
            data[k] = value
        return data


@dataclass
class Pair:
    """A stack environment variable."""

    name: str
    value: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Pair:
        value = data.get(PF.STACK_ENV_VALUE)
        return cls(name=data[PF.STACK_ENV_NAME], value="" if value is None else str(value))

    def to_dict(self) -> dict[str, str]:
        return {PF.STACK_ENV_NAME: self.name, PF.STACK_ENV_VALUE: self.value}


def pairs_from_list(items: list[dict] | None) -> list[Pair]:
    return [Pair.from_dict(item) for item in items or []]


def pairs_to_list(pairs: list[Pair]) -> list[dict[str, str]]:
    return [pair.to_dict() for pair in pairs]


@dataclass
class Status(PortainerModel):
    authentication: bool | None = None
    endpoint_management: bool | None = None
    analytics: bool | None = None
    version: str | None = None

    fields_mapping: ClassVar[dict] = {
        PF.STATUS_AUTHENTICATION: "authentication",
        PF.STATUS_ENDPOINT_MANAGEMENT: "endpoint_management",
        PF.STATUS_ANALYTICS: "analytics",
        PF.STATUS_VERSION: "version",
    }


@dataclass
class Endpoint(PortainerModel):
    id: int | None = None
    name: str | None = None
    url: str | None = None
    public_url: str | None = None
    type: int | None = None
    group_id: int | None = None

    fields_mapping: ClassVar[dict] = {
        PF.ENDPOINT_ID: "id",
        PF.ENDPOINT_NAME: "name",
        PF.ENDPOINT_URL: "url",
        PF.ENDPOINT_PUBLIC_URL: "public_url",
        PF.ENDPOINT_TYPE: "type",
        PF.ENDPOINT_GROUP_ID: "group_id",
    }


@dataclass
class EndpointGroup(PortainerModel):
    id: int | None = None
    name: str | None = None
    description: str | None = None

    fields_mapping: ClassVar[dict] = {
        PF.GROUP_ID: "id",
        PF.GROUP_NAME: "name",
        PF.GROUP_DESCRIPTION: "description",
    }


@dataclass
class User(PortainerModel):
    id: int | None = None
    username: str | None = None
    role: int | None = None

    fields_mapping: ClassVar[dict] = {
        PF.USER_ID: "id",
        PF.USER_USERNAME: "username",
        PF.USER_ROLE: "role",
    }


@dataclass
class ResourceControl(PortainerModel):
    id: int | None = None
    resource_id: str | None = None
    type: str | int | None = None
    public: bool | None = None
    administrators_only: bool | None = None
    users: list[int] = field(default_factory=list)
    teams: list[int] = field(default_factory=list)

    fields_mapping: ClassVar[dict] = {
        PF.RC_ID: "id",
        PF.RC_RESOURCE_ID: "resource_id",
        PF.RC_TYPE: "type",
        PF.RC_PUBLIC: "public",
        PF.RC_ADMINISTRATORS_ONLY: "administrators_only",
    }

    def update_from_dict(self, data: dict[str, Any]) -> None:
        super().update_from_dict(data)

        # Access lists come back as {"UserId": 1, "AccessLevel": 1} records
        self.users = [a[PF.RC_USER_ID] for a in data.get(PF.RC_USER_ACCESSES) or []]
        self.teams = [a[PF.RC_TEAM_ID] for a in data.get(PF.RC_TEAM_ACCESSES) or []]

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data[PF.RC_USERS] = list(self.users)
        data[PF.RC_TEAMS] = list(self.teams)
        return data


@dataclass
class Stack(PortainerModel):
    id: int | None = None
    name: str | None = None
    type: int | None = None
    endpoint_id: int | None = None
    swarm_id: str | None = None
    entry_point: str | None = None
    env: list[Pair] = field(default_factory=list)
    resource_control: ResourceControl | None = None

    fields_mapping: ClassVar[dict] = {
        PF.STACK_ID: "id",
        PF.STACK_NAME: "name",
        PF.STACK_TYPE: "type",
        PF.STACK_ENDPOINT_ID: "endpoint_id",
        PF.STACK_SWARM_ID: "swarm_id",
        PF.STACK_ENTRY_POINT: "entry_point",
    }

    @property
    def type_name(self) -> str:
        return stack_type_label(self.type)

    def update_from_dict(self, data: dict[str, Any]) -> None:
        super().update_from_dict(data)

        if PF.STACK_ENV in data:
            self.env = pairs_from_list(data[PF.STACK_ENV])

        resource_control = data.get(PF.STACK_RESOURCE_CONTROL)
        if isinstance(resource_control, dict):
            self.resource_control = ResourceControl.from_dict(resource_control)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data[PF.STACK_TYPE_NAME] = self.type_name
        data[PF.STACK_ENV] = pairs_to_list(self.env)
        if self.resource_control is not None:
            data[PF.STACK_RESOURCE_CONTROL] = self.resource_control.to_dict()
        return data
