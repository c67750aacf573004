from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING
from dataclasses import dataclass

from .portainer_client import PortainerApiError
from .portainer_crud import AccessControlNotFound
from .portainer_models import Endpoint, ResourceControl, ResourceType, User


if TYPE_CHECKING:
    from .portainer_module import PortainerModule
    from .portainer_resolver import StackResolver


class AccessControlError(Exception):
    pass


class ConflictingAccessFlags(AccessControlError):
    pass


class MissingAccessFlag(AccessControlError):
    pass


class AccessLevel(Enum):
    ADMINS = "admins"
    PRIVATE = "private"
    PUBLIC = "public"


class AccessControlAction(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    NONE = "none"


def select_access_level(admins: bool = False, private: bool = False, public: bool = False) -> AccessLevel:
    flags = {
        AccessLevel.ADMINS: admins,
        AccessLevel.PRIVATE: private,
        AccessLevel.PUBLIC: public,
    }
    selected = [level for level, enabled in flags.items() if enabled]

    if len(selected) > 1:
        raise ConflictingAccessFlags("Only one of 'admins', 'private' or 'public' can be used.")

    if not selected:
        raise MissingAccessFlag("One of 'admins', 'private' or 'public' is required.")

    return selected[0]


@dataclass
class AccessControlResult:
    action: AccessControlAction
    resource_id: str
    resource_type: ResourceType
    access: AccessLevel
    resource_control: ResourceControl | None = None

    @property
    def changed(self) -> bool:
        return self.action != AccessControlAction.NONE


class AccessControlManager:
    """
    Sets who can see a single Docker or Portainer resource.

    Admins-only access removes the resource control; private and public
    access create one, falling back to updating the existing control when
    the server answers with a conflict.
    """

    def __init__(self, module: PortainerModule, resolver: StackResolver | None = None) -> None:
        self.module = module
        self.crud = module.crud
        self.resolver = resolver or module.resolver

    def set_access(
        self,
        resource_id: str,
        resource_type: ResourceType,
        access: AccessLevel,
        endpoint: Endpoint,
        check_mode: bool = False,
    ) -> AccessControlResult:
        self.module.debug(f"Getting {resource_type.value} access control info on {endpoint.name}")

        if access == AccessLevel.ADMINS:
            result = self._remove(resource_id, resource_type, endpoint, check_mode)
        else:
            result = self._grant(resource_id, resource_type, access, endpoint, check_mode)

        self.module.log(f"Access control set: {resource_type.value}={resource_id} access={access.value}")

        return result

    def get_resource_control(
        self, endpoint: Endpoint, resource_id: str, resource_type: ResourceType
    ) -> ResourceControl:
        if resource_type == ResourceType.STACK:
            stack = self.resolver.get_stack_by_name(
                resource_id,
                swarm_id=self.resolver.get_endpoint_swarm_id(endpoint),
                endpoint_id=endpoint.id,
            )
            if stack.resource_control is None or not stack.resource_control.id:
                raise AccessControlNotFound(f"No access control found for stack '{resource_id}'.")
            return stack.resource_control

        with self.crud.docker[resource_type].using_endpoint(endpoint.id) as docker_crud:
            return docker_crud.get_resource_control(resource_id)

    def get_current_user(self) -> User:
        username = self.module.client.username
        if not username:
            raise AccessControlError(
                "Private access needs the current user: set portainer_username."
            )
        return self.crud.user.get_item_by_name(username)

    def _remove(
        self,
        resource_id: str,
        resource_type: ResourceType,
        endpoint: Endpoint,
        check_mode: bool,
    ) -> AccessControlResult:
        result = AccessControlResult(
            action=AccessControlAction.NONE,
            resource_id=resource_id,
            resource_type=resource_type,
            access=AccessLevel.ADMINS,
        )

        try:
            control = self.get_resource_control(endpoint, resource_id, resource_type)
        except AccessControlNotFound:
            self.module.debug(f"No access control on {resource_type.value} {resource_id}")
            return result

        if not check_mode:
            self.crud.resource_control.delete_item_by_id(control.id)

        result.action = AccessControlAction.DELETE
        result.resource_control = control
        return result

    def _grant(
        self,
        resource_id: str,
        resource_type: ResourceType,
        access: AccessLevel,
        endpoint: Endpoint,
        check_mode: bool,
    ) -> AccessControlResult:
        public = access == AccessLevel.PUBLIC
        users = [self.get_current_user().id] if access == AccessLevel.PRIVATE else []

        result = AccessControlResult(
            action=AccessControlAction.CREATE,
            resource_id=resource_id,
            resource_type=resource_type,
            access=access,
            resource_control=ResourceControl(
                resource_id=resource_id, type=resource_type.value, public=public, users=users
            ),
        )

        if check_mode:
            try:
                control = self.get_resource_control(endpoint, resource_id, resource_type)
            except AccessControlNotFound:
                return result
            result.action = AccessControlAction.UPDATE
            result.resource_control.id = control.id
            return result

        try:
            result.resource_control = self.crud.resource_control.create_control(
                resource_id, resource_type, public=public, users=users
            )
            return result
        except PortainerApiError as e:
            if not e.conflict:
                raise

        self.module.debug(f"Access control already exists for {resource_type.value} {resource_id}")

        control = self.get_resource_control(endpoint, resource_id, resource_type)

        result.action = AccessControlAction.UPDATE
        result.resource_control = self.crud.resource_control.update_control(
            control.id, public=public, users=users
        )
        return result
