from __future__ import annotations

from typing import TYPE_CHECKING

from .portainer_fields import PortainerFields as PF
from .portainer_crud import (
    AmbiguousEndpoint,
    NoEndpoints,
    NotSwarmCluster,
    StackNotFound,
    get_nested,
)
from .portainer_models import Endpoint, Stack


if TYPE_CHECKING:
    from .portainer_module import PortainerModule


class StackResolver:
    """
    Locates endpoints and stacks by their human-readable names.

    A stack is identified by (name, endpoint id, swarm cluster id); stacks
    sharing a name on different endpoints are never conflated.
    """

    def __init__(self, module: PortainerModule) -> None:
        self.module = module
        self.crud = module.crud

    def get_swarm_cluster_id(self, endpoint_id: int) -> str:
        info = self.crud.endpoint.get_docker_info(endpoint_id)

        cluster_id = get_nested(info, PF.DOCKER_INFO_SWARM_CLUSTER_ID)
        if not cluster_id:
            raise NotSwarmCluster(f"Endpoint {endpoint_id} is not part of a swarm cluster.")

        return cluster_id

    def get_endpoint_swarm_id(self, endpoint: Endpoint) -> str | None:
        """Swarm cluster id of the endpoint, or None for plain Docker engines."""
        try:
            swarm_id = self.get_swarm_cluster_id(endpoint.id)
        except NotSwarmCluster:
            self.module.debug(f"Swarm cluster not found for endpoint {endpoint.name}")
            return None

        self.module.debug(f"Swarm cluster found with id {swarm_id}")
        return swarm_id

    def get_stack_by_name(
        self, name: str, swarm_id: str | None = None, endpoint_id: int | None = None
    ) -> Stack:
        for stack in self.crud.stack.list_stacks(swarm_id=swarm_id, endpoint_id=endpoint_id):
            if stack.name == name:
                return stack

        raise StackNotFound(f"Stack '{name}' not found.")

    def get_default_endpoint(self) -> Endpoint:
        endpoints = self.crud.endpoint.list_items()

        if not endpoints:
            raise NoEndpoints("No endpoints available.")

        if len(endpoints) > 1:
            raise AmbiguousEndpoint(
                "Several endpoints available, select one with 'endpoint' or 'endpoint_id'.",
                [e.id for e in endpoints],
            )

        return endpoints[0]

    def get_endpoint(self, name: str | None = None, endpoint_id: int | None = None) -> Endpoint:
        if endpoint_id is not None:
            return self.crud.endpoint.get_item_by_id(endpoint_id)

        if name:
            return self.crud.endpoint.get_item_by_name(name)

        self.module.warn(
            "Endpoint not set. The task will fail if there is not exactly one endpoint available."
        )
        endpoint = self.get_default_endpoint()
        self.module.debug(f"Using the only available endpoint: {endpoint.name}")

        return endpoint
