#!/usr/bin/python
# portainer_status_info.py - A module to get the Portainer server status.
# Author: Igor Moraru (@bgtor)
# License: GPL-3.0-or-later
# GNU General Public License v3.0+ (see COPYING or https://www.gnu.org/licenses/gpl-3.0.txt)

from __future__ import annotations

DOCUMENTATION = r"""
---
module: portainer_status_info
short_description: Gets the Portainer server status
description:
    - Retrieve the version and feature flags of a Portainer server.
version_added: "1.0.0"
author: Igor Moraru (@bgtor)
extends_documentation_fragment:
    - psu.portainer.portainer_client
"""

EXAMPLES = r"""
- name: Get the Portainer version
  psu.portainer.portainer_status_info:
    portainer_url: https://portainer.example.com
    portainer_token: "{{ portainer_api_token }}"
  register: portainer_status
"""

RETURN = r"""
status:
    description: Server status
    returned: always
    type: dict
    sample: {
        "Authentication": true,
        "EndpointManagement": true,
        "Analytics": false,
        "Version": "1.19.2"
    }
"""

from ..module_utils.portainer_module import PortainerModule


def main():
    module = PortainerModule(
        argument_spec=PortainerModule.generate_argspec(),
        supports_check_mode=True,
    )

    module.run_checks()

    status = {}

    try:
        status = module.client.get_status().to_dict()

    except module.client.exc.PortainerApiError as e:
        module.fail_json(
            msg=f"API Request Error: {e}",
            status=e.status,
            body=e.body,
            url=e.url,
            method=e.method,
        )

    except Exception as e:
        module.fail_json(msg=f"Error getting status: {str(e)}")

    module.exit_json(changed=False, status=status)


if __name__ == "__main__":
    main()
