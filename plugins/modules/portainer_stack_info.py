#!/usr/bin/python
# portainer_stack_info.py - A module to get info about Portainer stacks.
# Author: Igor Moraru (@bgtor)
# License: GPL-3.0-or-later
# GNU General Public License v3.0+ (see COPYING or https://www.gnu.org/licenses/gpl-3.0.txt)

from __future__ import annotations

DOCUMENTATION = r"""
---
module: portainer_stack_info
short_description: Gets Portainer stack info
description:
    - List all stacks, or the stacks deployed on one endpoint.
    - Inspect a single stack by name.
version_added: "1.0.0"
author: Igor Moraru (@bgtor)
options:
    name:
        description:
            - Name of the stack to inspect.
            - The stack is looked up on the selected endpoint. When no endpoint is
              set, the only endpoint available is used.
        type: str
    endpoint:
        description: Name of the endpoint whose stacks are listed
        type: str
    endpoint_id:
        description: ID of the endpoint whose stacks are listed
        type: int
extends_documentation_fragment:
    - psu.portainer.portainer_client
"""

EXAMPLES = r"""
- name: List all stacks
  psu.portainer.portainer_stack_info:
    portainer_url: https://portainer.example.com
    portainer_token: "{{ portainer_api_token }}"

- name: List the stacks of an endpoint
  psu.portainer.portainer_stack_info:
    portainer_url: https://portainer.example.com
    portainer_token: "{{ portainer_api_token }}"
    endpoint: primary

- name: Inspect a stack
  psu.portainer.portainer_stack_info:
    portainer_url: https://portainer.example.com
    portainer_token: "{{ portainer_api_token }}"
    endpoint_id: 1
    name: web
"""

RETURN = r"""
stacks:
    description: Stack information
    returned: always
    type: list
    elements: dict
    sample: [{
        "Id": 5,
        "Name": "web",
        "Type": 1,
        "TypeName": "swarm",
        "EndpointId": 1,
        "SwarmId": "jpofkc0i9uo9wtx1zesuk649w",
        "Env": [{"name": "APP_ENV", "value": "production"}]
    }]
msg:
    description: Human readable message
    returned: always
    type: str
"""

from ..module_utils.portainer_module import PortainerModule


class PortainerStackInfoManager:
    def __init__(self, module: PortainerModule):
        self.module = module
        self.crud = module.crud
        self.resolver = module.resolver

        self.name = module.params["name"]
        self.endpoint = module.params["endpoint"]
        self.endpoint_id = module.params["endpoint_id"]

    def get_stacks(self):

        if self.name:
            endpoint = self.resolver.get_endpoint(name=self.endpoint, endpoint_id=self.endpoint_id)
            swarm_id = self.resolver.get_endpoint_swarm_id(endpoint)
            return [
                self.resolver.get_stack_by_name(self.name, swarm_id=swarm_id, endpoint_id=endpoint.id)
            ]

        if self.endpoint or self.endpoint_id is not None:
            endpoint = self.resolver.get_endpoint(name=self.endpoint, endpoint_id=self.endpoint_id)
            swarm_id = self.resolver.get_endpoint_swarm_id(endpoint)
            return self.crud.stack.list_stacks(swarm_id=swarm_id, endpoint_id=endpoint.id)

        return self.crud.stack.list_stacks()


def main():
    argument_spec = PortainerModule.generate_argspec(
        name=dict(type="str", default=None),
        endpoint=dict(type="str", default=None),
        endpoint_id=dict(type="int", default=None),
    )

    module = PortainerModule(
        argument_spec=argument_spec,
        supports_check_mode=True,
    )

    module.run_checks()

    stacks = []
    msg = ""

    try:
        manager = PortainerStackInfoManager(module)

        stacks = [s.to_dict() for s in manager.get_stacks()]

        msg = "Stacks successfully retrieved!"

    except module.client.exc.PortainerApiError as e:
        module.fail_json(
            msg=f"API Request Error: {e}",
            status=e.status,
            body=e.body,
            url=e.url,
            method=e.method,
        )

    except module.crud.exc.PortainerCRUDException as e:
        module.fail_json(msg=str(e))

    except Exception as e:
        module.fail_json(msg=f"Error getting stack info: {str(e)}")

    module.exit_json(**{"changed": False, "msg": msg, "stacks": stacks})


if __name__ == "__main__":
    main()
