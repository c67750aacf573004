#!/usr/bin/python
# portainer_login.py - A module to get a Portainer API token.
# Author: Igor Moraru (@bgtor)
# License: GPL-3.0-or-later
# GNU General Public License v3.0+ (see COPYING or https://www.gnu.org/licenses/gpl-3.0.txt)

from __future__ import annotations

DOCUMENTATION = r"""
---
module: portainer_login
short_description: Authenticate against Portainer
description:
    - Exchange a username and password for a Portainer API token.
    - The token can be passed to other modules as O(portainer_token) so they
      skip authentication.
    - When only O(portainer_token) is set, the token is returned unchanged.
version_added: "1.0.0"
author: Igor Moraru (@bgtor)
extends_documentation_fragment:
    - psu.portainer.portainer_client
"""

EXAMPLES = r"""
- name: Log in once
  psu.portainer.portainer_login:
    portainer_url: https://portainer.example.com
    portainer_username: admin
    portainer_password: "{{ portainer_password }}"
  register: portainer_login
  no_log: true

- name: Reuse the token
  psu.portainer.portainer_stack_info:
    portainer_url: https://portainer.example.com
    portainer_token: "{{ portainer_login.token }}"
"""

RETURN = r"""
token:
    description: Portainer API token (JWT)
    returned: success
    type: str
    sample: "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9..."
"""

from ..module_utils.portainer_module import PortainerModule


def main():
    module = PortainerModule(
        argument_spec=PortainerModule.generate_argspec(),
        supports_check_mode=True,
    )

    module.run_checks()

    token = None

    try:
        if module.params["portainer_username"]:
            token = module.client.authenticate()
        else:
            token = module.client.get_token()

    except module.client.exc.PortainerApiError as e:
        module.fail_json(
            msg=f"Authentication failed: {e}",
            status=e.status,
            body=e.body,
            url=e.url,
            method=e.method,
        )

    except module.client.exc.PortainerClientError as e:
        module.fail_json(msg=f"Authentication failed: {e}")

    except Exception as e:
        module.fail_json(msg=f"Error logging in: {str(e)}")

    module.exit_json(changed=False, token=token)


if __name__ == "__main__":
    main()
