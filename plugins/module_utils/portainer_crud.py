from __future__ import annotations

import json

from functools import reduce
from typing import TYPE_CHECKING, Any, Generator, TypeVar
from contextlib import contextmanager

from .portainer_fields import PortainerFields as PF
from .portainer_client import PortainerApiError
from .portainer_models import (
    Endpoint,
    EndpointGroup,
    Pair,
    PortainerModel,
    ResourceControl,
    ResourceType,
    Stack,
    StackType,
    User,
    pairs_to_list,
)


if TYPE_CHECKING:
    from .portainer_module import PortainerModule


class PortainerCRUDException(Exception):
    pass


class ItemNotExists(PortainerCRUDException):
    pass


class MultipleItemsReturned(PortainerCRUDException):
    def __init__(self, message, item_ids: list[int]):
        super().__init__(message)
        self.item_ids = item_ids


class StackNotFound(ItemNotExists):
    pass


class EndpointNotFound(ItemNotExists):
    pass


class EndpointGroupNotFound(ItemNotExists):
    pass


class UserNotFound(ItemNotExists):
    pass


class AccessControlNotFound(ItemNotExists):
    pass


class NotSwarmCluster(PortainerCRUDException):
    """The endpoint's Docker engine is not part of a swarm cluster."""


class NoEndpoints(PortainerCRUDException):
    pass


class AmbiguousEndpoint(MultipleItemsReturned):
    pass


def get_nested(d, path, default=None):
    try:
        return reduce(lambda x, key: x[key], path.split("."), d)
    except (KeyError, TypeError):
        return default


T = TypeVar("T", dict, list)


class BaseCRUD:

    model: type[PortainerModel] | None = None
    not_found_exc: type[ItemNotExists] = ItemNotExists

    def __init__(
        self,
        module: PortainerModule,
        endpoint: str,
        name_field: str,
        id_field: str,
        resource_name: str,
    ) -> None:
        self.module = module

        self.resource_name = resource_name
        self._endpoint = endpoint
        self.name_field = name_field
        self.id_field = id_field

    def _get_item_endpoint(self, id: int | str) -> str:
        return f"{self.endpoint}/{id}"

    def _get_delete_endpoint(self, id: int | str) -> str:
        return f"{self.endpoint}/{id}"

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def get_item_by_name(self, name: str, params: dict | None = None) -> Any:
        """Return the first item whose name matches exactly."""
        if not name:
            raise ValueError("Name should not be empty")

        for item in self.module.client.get(self.endpoint, params=params) or []:
            if item.get(self.name_field) == name:
                return self._process_single_item(item)

        raise self.not_found_exc(f"{self.resource_name.capitalize()} '{name}' not found.")

    def get_item_by_id(self, item_id: int | str) -> Any:
        if item_id is None:
            raise ValueError("Item ID cannot be None")

        try:
            data = self.module.client.get(self._get_item_endpoint(item_id))
        except PortainerApiError as e:
            if e.status == 404:
                raise self.not_found_exc(
                    f"{self.resource_name.capitalize()} '{item_id}' not found."
                ) from e
            raise

        return self._process_response(data)

    def list_items(self, params: dict | None = None) -> list:

        return self._process_response(self.module.client.get(self.endpoint, params=params)) or []

    def delete_item_by_id(self, item_id: int | str, params: dict | None = None) -> None:
        if item_id is None:
            raise ValueError("Item ID cannot be None")

        self.module.client.delete(self._get_delete_endpoint(item_id), params=params)

    def _process_response(self, data: T) -> Any:
        """
        Hook for subclasses to normalize/transform response data.
        Can handle both single items and lists.
        """
        if not data:
            return data

        if isinstance(data, list):
            return [self._process_single_item(item) for item in data]
        return self._process_single_item(data)

    def _process_single_item(self, item: dict) -> Any:
        """Build the model for a single item, when the CRUD declares one."""
        if self.model is None:
            return item
        return self.model.from_dict(item)


class BaseDockerCRUD(BaseCRUD):
    """
    Base class for Docker API resources accessed through Portainer's proxy.
    Handles endpoint construction for a selected Portainer endpoint.
    """

    def __init__(
        self,
        module: PortainerModule,
        docker_endpoint: str,
        name_field: str,
        id_field: str,
        resource_name: str,
    ) -> None:
        self.docker_endpoint = docker_endpoint

        super().__init__(
            module=module,
            endpoint=docker_endpoint,
            name_field=name_field,
            id_field=id_field,
            resource_name=resource_name,
        )

        self._endpoint_id: int | None = None

    @contextmanager
    def using_endpoint(self, endpoint_id: int) -> Generator[BaseDockerCRUD, None, None]:
        """Context manager to set the Portainer endpoint for Docker API access"""
        old_endpoint_id = self._endpoint_id
        self._endpoint_id = endpoint_id
        try:
            yield self
        finally:
            self._endpoint_id = old_endpoint_id

    @property
    def endpoint(self) -> str:
        """Build the Docker API endpoint through Portainer proxy"""
        if self._endpoint_id is None:
            raise ValueError(
                f"endpoint_id must be set to use {self.resource_name}. "
                f"Use 'with crud.using_endpoint(endpoint_id):' context manager."
            )
        return f"/endpoints/{self._endpoint_id}/docker{self.docker_endpoint}"


class DockerResourceCRUD(BaseDockerCRUD):
    """Docker resources that Portainer decorates with a resource control."""

    def __init__(
        self,
        module: PortainerModule,
        resource_type: ResourceType,
        docker_endpoint: str,
        id_field: str = "Id",
        inspect_suffix: str = "",
    ) -> None:
        super().__init__(
            module=module,
            docker_endpoint=docker_endpoint,
            name_field="Name",
            id_field=id_field,
            resource_name=f"docker {resource_type.value}",
        )
        self.resource_type = resource_type
        self.inspect_suffix = inspect_suffix

    def _get_item_endpoint(self, id: int | str) -> str:
        return f"{self.endpoint}/{id}{self.inspect_suffix}"

    def get_resource_control(self, resource_id: str) -> ResourceControl:
        item = self.get_item_by_id(resource_id)

        control = get_nested(item, PF.DOCKER_RESOURCE_CONTROL)
        if not isinstance(control, dict) or not control.get(PF.RC_ID):
            raise AccessControlNotFound(
                f"No access control found for {self.resource_type.value} '{resource_id}'."
            )

        return ResourceControl.from_dict(control)


class EndpointGroupCRUD(BaseCRUD):

    model = EndpointGroup
    not_found_exc = EndpointGroupNotFound

    def __init__(self, module: PortainerModule) -> None:
        resource_name = "endpoint group"
        endpoint = "/endpoint_groups"
        name_field = PF.GROUP_NAME
        id_field = PF.GROUP_ID
        super().__init__(module, endpoint, name_field, id_field, resource_name)


class EndpointCRUD(BaseCRUD):

    model = Endpoint
    not_found_exc = EndpointNotFound

    def __init__(self, module: PortainerModule) -> None:
        resource_name = "endpoint"
        endpoint = "/endpoints"
        name_field = PF.ENDPOINT_NAME
        id_field = PF.ENDPOINT_ID
        super().__init__(module, endpoint, name_field, id_field, resource_name)

    def get_docker_info(self, endpoint_id: int) -> dict[str, Any]:
        """Raw `docker info` payload of an endpoint."""
        return self.module.client.get(f"{self.endpoint}/{endpoint_id}/docker/info") or {}


class StackCRUD(BaseCRUD):

    model = Stack
    not_found_exc = StackNotFound

    def __init__(self, module: PortainerModule) -> None:
        resource_name = "stack"
        endpoint = "/stacks"
        name_field = PF.STACK_NAME
        id_field = PF.STACK_ID
        super().__init__(module, endpoint, name_field, id_field, resource_name)

    def list_stacks(self, swarm_id: str | None = None, endpoint_id: int | None = None) -> list[Stack]:
        """List stacks, optionally filtered. Empty filter values mean no filter."""
        filters: dict[str, Any] = {}
        if swarm_id:
            filters[PF.STACK_SWARM_ID] = swarm_id
        if endpoint_id:
            filters[PF.STACK_ENDPOINT_ID] = endpoint_id

        params = {PF.STACK_FILTERS_QUERY: json.dumps(filters, separators=(",", ":"))}

        return self.list_items(params=params)

    def create_swarm_stack(
        self,
        name: str,
        env: list[Pair],
        stack_file_content: str,
        swarm_id: str,
        endpoint_id: int,
    ) -> Stack:
        return self._create_stack(
            StackType.SWARM, name, env, stack_file_content, endpoint_id, swarm_id=swarm_id
        )

    def create_compose_stack(
        self,
        name: str,
        env: list[Pair],
        stack_file_content: str,
        endpoint_id: int,
    ) -> Stack:
        return self._create_stack(StackType.COMPOSE, name, env, stack_file_content, endpoint_id)

    def _create_stack(
        self,
        stack_type: StackType,
        name: str,
        env: list[Pair],
        stack_file_content: str,
        endpoint_id: int,
        swarm_id: str | None = None,
    ) -> Stack:
        if not name:
            raise ValueError("Name should not be empty")

        data: dict[str, Any] = {
            PF.STACK_NAME: name,
            PF.STACK_FILE_CONTENT: stack_file_content,
        }
        if swarm_id:
            data[PF.STACK_SWARM_ID_CREATE] = swarm_id
        if env:
            data[PF.STACK_ENV] = pairs_to_list(env)

        params = {
            PF.STACK_TYPE_QUERY: stack_type.value,
            PF.STACK_METHOD_QUERY: PF.STACK_METHOD_STRING,
            PF.STACK_ENDPOINT_ID_QUERY: endpoint_id,
        }

        return self._process_response(self.module.client.post(self.endpoint, data=data, params=params))

    def update_stack(
        self,
        stack: Stack,
        env: list[Pair],
        stack_file_content: str,
        prune: bool,
        endpoint_id: int,
    ) -> None:
        if stack.id is None:
            raise ValueError("Item ID cannot be None")

        data: dict[str, Any] = {
            PF.STACK_FILE_CONTENT: stack_file_content,
            PF.STACK_PRUNE: prune,
        }
        if env:
            data[PF.STACK_ENV] = pairs_to_list(env)

        params = {PF.STACK_ENDPOINT_ID_QUERY: endpoint_id}

        self.module.client.put(self._get_item_endpoint(stack.id), data=data, params=params)

    def get_stack_file_content(self, stack_id: int) -> str:
        stack_file = self.module.client.get(f"{self.endpoint}/{stack_id}/file") or {}
        return stack_file.get(PF.STACK_FILE_CONTENT, "")


class ResourceControlCRUD(BaseCRUD):

    model = ResourceControl
    not_found_exc = AccessControlNotFound

    def __init__(self, module: PortainerModule) -> None:
        resource_name = "resource control"
        endpoint = "/resource_controls"
        name_field = PF.RC_RESOURCE_ID
        id_field = PF.RC_ID
        super().__init__(module, endpoint, name_field, id_field, resource_name)

    def create_control(
        self,
        resource_id: str,
        resource_type: ResourceType,
        public: bool = False,
        users: list[int] | None = None,
        teams: list[int] | None = None,
        sub_resource_ids: list[str] | None = None,
    ) -> ResourceControl:
        data: dict[str, Any] = {
            PF.RC_RESOURCE_ID_CREATE: resource_id,
            PF.RC_TYPE: resource_type.value,
        }
        if public:
            data[PF.RC_PUBLIC] = True
        if users:
            data[PF.RC_USERS] = users
        if teams:
            data[PF.RC_TEAMS] = teams
        if sub_resource_ids:
            data[PF.RC_SUB_RESOURCE_IDS] = sub_resource_ids

        return self._process_response(self.module.client.post(self.endpoint, data=data))

    def update_control(
        self,
        control_id: int,
        public: bool = False,
        users: list[int] | None = None,
        teams: list[int] | None = None,
    ) -> ResourceControl:
        data: dict[str, Any] = {}
        if public:
            data[PF.RC_PUBLIC] = True
        if users:
            data[PF.RC_USERS] = users
        if teams:
            data[PF.RC_TEAMS] = teams

        return self._process_response(
            self.module.client.put(self._get_item_endpoint(control_id), data=data)
        )


class UserCRUD(BaseCRUD):

    model = User
    not_found_exc = UserNotFound

    def __init__(self, module: PortainerModule) -> None:
        resource_name = "user"
        endpoint = "/users"
        name_field = PF.USER_USERNAME
        id_field = PF.USER_ID
        super().__init__(module, endpoint, name_field, id_field, resource_name)


class PortainerCRUD:

    class exc:
        PortainerCRUDException = PortainerCRUDException
        ItemNotExists = ItemNotExists
        MultipleItemsReturned = MultipleItemsReturned
        StackNotFound = StackNotFound
        EndpointNotFound = EndpointNotFound
        EndpointGroupNotFound = EndpointGroupNotFound
        UserNotFound = UserNotFound
        AccessControlNotFound = AccessControlNotFound
        NotSwarmCluster = NotSwarmCluster
        NoEndpoints = NoEndpoints
        AmbiguousEndpoint = AmbiguousEndpoint

    def __init__(self, module: PortainerModule) -> None:
        self.module = module
        self.endpoint_group = EndpointGroupCRUD(module)
        self.endpoint = EndpointCRUD(module)
        self.stack = StackCRUD(module)
        self.resource_control = ResourceControlCRUD(module)
        self.user = UserCRUD(module)

        self.docker: dict[ResourceType, DockerResourceCRUD] = {
            ResourceType.CONTAINER: DockerResourceCRUD(
                module, ResourceType.CONTAINER, "/containers", inspect_suffix="/json"
            ),
            ResourceType.SERVICE: DockerResourceCRUD(
                module, ResourceType.SERVICE, "/services", id_field="ID"
            ),
            ResourceType.VOLUME: DockerResourceCRUD(
                module, ResourceType.VOLUME, "/volumes", id_field="Name"
            ),
            ResourceType.NETWORK: DockerResourceCRUD(module, ResourceType.NETWORK, "/networks"),
            ResourceType.SECRET: DockerResourceCRUD(
                module, ResourceType.SECRET, "/secrets", id_field="ID"
            ),
            ResourceType.CONFIG: DockerResourceCRUD(
                module, ResourceType.CONFIG, "/configs", id_field="ID"
            ),
        }
