from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING
from dataclasses import dataclass, field

from .portainer_crud import StackNotFound
from .portainer_models import Endpoint, Pair, Stack, StackType


if TYPE_CHECKING:
    from .portainer_module import PortainerModule
    from .portainer_resolver import StackResolver


class DeploymentError(Exception):
    pass


class StackFileContentRequired(DeploymentError):
    pass


class DeploymentAction(Enum):
    CREATE = "create"
    UPDATE = "update"


def merge_env(existing: list[Pair], desired: list[Pair]) -> list[Pair]:
    """
    Left-biased merge keyed by name.

    Existing pairs keep their position and get the desired value when the
    name matches; new names are appended in the order they were given.
    """
    merged = [Pair(p.name, p.value) for p in existing]
    index = {p.name: i for i, p in enumerate(merged)}

    for pair in desired:
        if pair.name in index:
            merged[index[pair.name]].value = pair.value
        else:
            index[pair.name] = len(merged)
            merged.append(Pair(pair.name, pair.value))

    return merged


def dedupe_env(pairs: list[Pair]) -> list[Pair]:
    """Collapse duplicate names, last value wins, first position kept."""
    return merge_env([], pairs)


@dataclass
class DeploymentRequest:
    name: str
    endpoint: Endpoint
    env: list[Pair] = field(default_factory=list)
    stack_file_content: str | None = None
    replace_env: bool = False
    prune: bool = False


@dataclass
class DeploymentResult:
    action: DeploymentAction
    stack: Stack
    env: list[Pair]
    swarm_id: str | None = None
    previous_env: list[Pair] = field(default_factory=list)


class DeploymentReconciler:
    """
    Decides whether a named deployment creates a new stack or updates the
    existing one, and sends the matching payload.
    """

    def __init__(self, module: PortainerModule, resolver: StackResolver | None = None) -> None:
        self.module = module
        self.crud = module.crud
        self.resolver = resolver or module.resolver

    def reconcile(self, request: DeploymentRequest, check_mode: bool = False) -> DeploymentResult:
        endpoint = request.endpoint

        swarm_id = self.resolver.get_endpoint_swarm_id(endpoint)

        try:
            stack = self.resolver.get_stack_by_name(
                request.name, swarm_id=swarm_id, endpoint_id=endpoint.id
            )
        except StackNotFound:
            self.module.debug(f"Stack {request.name} not found. Deploying...")
            return self._create(request, swarm_id, check_mode)

        self.module.debug(f"Stack {stack.name} found. Updating...")
        return self._update(request, stack, swarm_id, check_mode)

    def effective_env(self, existing: list[Pair], request: DeploymentRequest) -> list[Pair]:
        if request.replace_env:
            return [Pair(p.name, p.value) for p in request.env]
        return merge_env(existing, request.env)

    def _create(
        self, request: DeploymentRequest, swarm_id: str | None, check_mode: bool
    ) -> DeploymentResult:
        if request.stack_file_content is None:
            raise StackFileContentRequired(
                f"Stack '{request.name}' does not exist. Provide a stack file to create it."
            )

        env = [Pair(p.name, p.value) for p in request.env]
        endpoint_id = request.endpoint.id

        if check_mode:
            stack = Stack(
                name=request.name,
                type=(StackType.SWARM if swarm_id else StackType.COMPOSE).value,
                endpoint_id=endpoint_id,
                swarm_id=swarm_id,
                env=env,
            )
        elif swarm_id:
            stack = self.crud.stack.create_swarm_stack(
                request.name, env, request.stack_file_content, swarm_id, endpoint_id
            )
        else:
            stack = self.crud.stack.create_compose_stack(
                request.name, env, request.stack_file_content, endpoint_id
            )

        return DeploymentResult(
            action=DeploymentAction.CREATE, stack=stack, env=env, swarm_id=swarm_id
        )

    def _update(
        self,
        request: DeploymentRequest,
        stack: Stack,
        swarm_id: str | None,
        check_mode: bool,
    ) -> DeploymentResult:
        previous_env = list(stack.env)
        env = self.effective_env(previous_env, request)

        if not check_mode:
            stack_file_content = request.stack_file_content
            if stack_file_content is None:
                self.module.debug(f"Loading stack file of stack {stack.name}")
                stack_file_content = self.crud.stack.get_stack_file_content(stack.id)

            self.crud.stack.update_stack(
                stack, env, stack_file_content, request.prune, request.endpoint.id
            )

        stack.env = env

        return DeploymentResult(
            action=DeploymentAction.UPDATE,
            stack=stack,
            env=env,
            swarm_id=swarm_id,
            previous_env=previous_env,
        )
