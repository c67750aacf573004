#!/usr/bin/python
# portainer_endpoint_group_info.py - A module to get info about Portainer endpoint groups.
# Author: Igor Moraru (@bgtor)
# License: GPL-3.0-or-later
# GNU General Public License v3.0+ (see COPYING or https://www.gnu.org/licenses/gpl-3.0.txt)

from __future__ import annotations

DOCUMENTATION = r"""
---
module: portainer_endpoint_group_info
short_description: Gets Portainer endpoint group info
description:
    - List Portainer endpoint groups or inspect one by name.
version_added: "1.0.0"
author: Igor Moraru (@bgtor)
options:
    name:
        description: Name of the endpoint group to inspect
        type: str
extends_documentation_fragment:
    - psu.portainer.portainer_client
"""

EXAMPLES = r"""
- name: List endpoint groups
  psu.portainer.portainer_endpoint_group_info:
    portainer_url: https://portainer.example.com
    portainer_token: "{{ portainer_api_token }}"

- name: Inspect an endpoint group
  psu.portainer.portainer_endpoint_group_info:
    portainer_url: https://portainer.example.com
    portainer_token: "{{ portainer_api_token }}"
    name: Unassigned
"""

RETURN = r"""
endpoint_groups:
    description: Endpoint group information
    returned: always
    type: list
    elements: dict
    sample: [{
        "Id": 1,
        "Name": "Unassigned",
        "Description": "Unassigned endpoints"
    }]
msg:
    description: Human readable message
    returned: always
    type: str
"""

from ..module_utils.portainer_module import PortainerModule


def main():
    argument_spec = PortainerModule.generate_argspec(
        name=dict(type="str", default=None),
    )

    module = PortainerModule(
        argument_spec=argument_spec,
        supports_check_mode=True,
    )

    module.run_checks()

    groups = []
    msg = ""

    try:
        name = module.params["name"]

        if name:
            groups = [module.crud.endpoint_group.get_item_by_name(name)]
        else:
            groups = module.crud.endpoint_group.list_items()

        groups = [g.to_dict() for g in groups]

        msg = "Endpoint groups successfully retrieved!"

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
        module.fail_json(msg=f"Error getting endpoint group info: {str(e)}")

    module.exit_json(**{"changed": False, "msg": msg, "endpoint_groups": groups})


if __name__ == "__main__":
    main()
