#!/usr/bin/python
# portainer_endpoint_info.py - A module to get info about Portainer endpoints.
# Author: Igor Moraru (@bgtor)
# License: GPL-3.0-or-later
# GNU General Public License v3.0+ (see COPYING or https://www.gnu.org/licenses/gpl-3.0.txt)

from __future__ import annotations

DOCUMENTATION = r"""
---
module: portainer_endpoint_info
short_description: Gets Portainer endpoint info
description:
    - List Portainer endpoints, optionally only those of one endpoint group.
    - Inspect a single endpoint by name or ID.
version_added: "1.0.0"
author: Igor Moraru (@bgtor)
options:
    name:
        description: Name of the endpoint to inspect
        type: str
    endpoint_id:
        description: The ID of the endpoint to inspect
        type: int
    group:
        description: Name of the endpoint group to filter endpoints by
        type: str
extends_documentation_fragment:
    - psu.portainer.portainer_client
"""

EXAMPLES = r"""
- name: List all endpoints
  psu.portainer.portainer_endpoint_info:
    portainer_url: https://portainer.example.com
    portainer_token: "{{ portainer_api_token }}"

- name: List the endpoints of a group
  psu.portainer.portainer_endpoint_info:
    portainer_url: https://portainer.example.com
    portainer_token: "{{ portainer_api_token }}"
    group: production

- name: Inspect an endpoint by its name
  psu.portainer.portainer_endpoint_info:
    portainer_url: https://portainer.example.com
    portainer_token: "{{ portainer_api_token }}"
    name: primary
"""

RETURN = r"""
endpoints:
    description: Endpoint information
    returned: always
    type: list
    elements: dict
    sample: [{
        "Id": 1,
        "Name": "primary",
        "Type": 1,
        "URL": "unix:///var/run/docker.sock",
        "PublicURL": "",
        "GroupId": 1
    }]
msg:
    description: Human readable message
    returned: always
    type: str
"""

from ..module_utils.portainer_module import PortainerModule


class PortainerEndpointInfoManager:
    def __init__(self, module: PortainerModule):
        self.module = module
        self.crud = module.crud

        self.endpoint_id = module.params["endpoint_id"]
        self.name = module.params["name"]
        self.group = module.params["group"]

    def get_endpoints(self):

        if self.endpoint_id is not None:
            return [self.crud.endpoint.get_item_by_id(self.endpoint_id)]

        if self.name:
            return [self.crud.endpoint.get_item_by_name(self.name)]

        endpoints = self.crud.endpoint.list_items()

        if self.group:
            group = self.crud.endpoint_group.get_item_by_name(self.group)
            endpoints = [e for e in endpoints if e.group_id == group.id]

        return endpoints


def main():
    argument_spec = PortainerModule.generate_argspec(
        endpoint_id=dict(type="int", default=None),
        name=dict(type="str", default=None),
        group=dict(type="str", default=None),
    )

    module = PortainerModule(
        argument_spec=argument_spec,
        supports_check_mode=True,
        mutually_exclusive=[
            ["endpoint_id", "name"],
            ["endpoint_id", "group"],
            ["name", "group"],
        ],
    )

    module.run_checks()

    endpoints = []
    msg = ""

    try:
        manager = PortainerEndpointInfoManager(module)

        endpoints = [e.to_dict() for e in manager.get_endpoints()]

        msg = "Endpoints successfully retrieved!"

    except module.client.exc.PortainerApiError as e:
        module.fail_json(
            msg=f"API Request Error: {e}",
            status=e.status,
            body=e.body,
            url=e.url,
            method=e.method,
        )

    except module.crud.exc.ItemNotExists as e:
        module.fail_json(msg=str(e))

    except Exception as e:
        module.fail_json(msg=f"Error getting endpoint info: {str(e)}")

    module.exit_json(**{"changed": False, "msg": msg, "endpoints": endpoints})


if __name__ == "__main__":
    main()
