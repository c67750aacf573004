#!/usr/bin/python
# portainer_access.py - A module to set who can access a Portainer resource.
# Author: Igor Moraru (@bgtor)
# License: GPL-3.0-or-later
# GNU General Public License v3.0+ (see COPYING or https://www.gnu.org/licenses/gpl-3.0.txt)

from __future__ import annotations

DOCUMENTATION = r"""
---
module: portainer_access
short_description: Set the access level of a Portainer resource
description:
    - Make a Docker resource or a stack visible to administrators only, to the
      current user only, or to every user.
    - Exactly one of O(admins), O(private) or O(public) must be set.
    - Supports check mode.
version_added: "1.0.0"
author: Igor Moraru (@bgtor)
options:
    resource_type:
        description: Kind of the resource
        type: str
        required: true
        choices: ['container', 'service', 'volume', 'network', 'secret', 'config', 'stack']
    resource:
        description:
            - ID of the Docker resource, or name of the stack when O(resource_type=stack).
        type: str
        required: true
    endpoint:
        description:
            - Name of the endpoint holding the resource.
            - When neither O(endpoint) nor O(endpoint_id) is set, the only endpoint
              available is used.
        type: str
    endpoint_id:
        description: ID of the endpoint holding the resource
        type: int
    admins:
        description: Restrict access to administrators by removing the resource control
        type: bool
        default: false
    private:
        description: Restrict access to the user running the task (O(portainer_username))
        type: bool
        default: false
    public:
        description: Give access to every user
        type: bool
        default: false
extends_documentation_fragment:
    - psu.portainer.portainer_client
"""

EXAMPLES = r"""
- name: Make a stack public
  psu.portainer.portainer_access:
    portainer_url: https://portainer.example.com
    portainer_username: admin
    portainer_password: "{{ portainer_password }}"
    resource_type: stack
    resource: web
    endpoint: primary
    public: true

- name: Hide a volume from regular users
  psu.portainer.portainer_access:
    portainer_url: https://portainer.example.com
    portainer_token: "{{ portainer_token }}"
    resource_type: volume
    resource: web_data
    endpoint_id: 1
    admins: true
"""

RETURN = r"""
action:
    description: What was done to the resource control
    type: str
    returned: always
    choices: ['create', 'update', 'delete', 'none']
    sample: "update"

access:
    description: Access level that was set
    type: str
    returned: always
    sample: "public"

resource_control:
    description: The resource control that was created, updated or removed
    type: dict
    returned: when a resource control was involved
    sample: {
        "Id": 3,
        "ResourceId": "web",
        "Type": 6,
        "Public": true,
        "Users": [],
        "Teams": []
    }

msg:
    description: Human readable message
    returned: always
    type: str
"""

from ..module_utils.portainer_module import PortainerModule
from ..module_utils.portainer_models import ResourceType
from ..module_utils.portainer_access import (
    AccessControlError,
    AccessControlManager,
    select_access_level,
)


def main():
    argument_spec = PortainerModule.generate_argspec(
        resource_type=dict(type="str", required=True, choices=[t.value for t in ResourceType]),
        resource=dict(type="str", required=True),
        endpoint=dict(type="str", default=None),
        endpoint_id=dict(type="int", default=None),
        admins=dict(type="bool", default=False),
        private=dict(type="bool", default=False),
        public=dict(type="bool", default=False),
    )

    module = PortainerModule(
        argument_spec=argument_spec,
        supports_check_mode=True,
    )

    try:
        access = select_access_level(
            admins=module.params["admins"],
            private=module.params["private"],
            public=module.params["public"],
        )
    except AccessControlError as e:
        module.fail_json(msg=str(e))

    module.run_checks()

    try:
        resource_type = ResourceType(module.params["resource_type"])
        resource_id = module.params["resource"]

        endpoint = module.resolver.get_endpoint(
            name=module.params["endpoint"], endpoint_id=module.params["endpoint_id"]
        )

        result = AccessControlManager(module).set_access(
            resource_id, resource_type, access, endpoint, check_mode=module.check_mode
        )

        results = dict(
            changed=result.changed,
            action=result.action.value,
            access=access.value,
            msg=f"Access of {resource_type.value} '{resource_id}' set to {access.value}.",
        )
        if result.resource_control is not None:
            results["resource_control"] = result.resource_control.to_dict()

        module.exit_json(**results)

    except module.client.exc.PortainerApiError as e:
        module.fail_json(
            msg=f"API request failed: {e}",
            status=e.status,
            body=e.body,
            url=e.url,
            method=e.method,
        )

    except (module.client.exc.PortainerClientError, module.crud.exc.PortainerCRUDException, AccessControlError) as e:
        module.fail_json(msg=str(e))

    except Exception as e:
        module.fail_json(msg=f"Error setting access: {str(e)}")


if __name__ == "__main__":
    main()
