#!/usr/bin/python
# portainer_stack.py - A module to deploy and remove Portainer stacks.
# Author: Igor Moraru (@bgtor)
# License: GPL-3.0-or-later
# GNU General Public License v3.0+ (see COPYING or https://www.gnu.org/licenses/gpl-3.0.txt)

from __future__ import annotations

DOCUMENTATION = r"""
---
module: portainer_stack
short_description: Deploy or remove Portainer stacks
description:
    - Deploy a stack by name, creating it when missing or updating it in place when it exists.
    - The stack type is detected from the endpoint; swarm endpoints get swarm stacks,
      plain Docker endpoints get compose stacks.
    - Environment variables are merged into the stack's current ones unless O(replace_env) is set.
    - Remove a stack resolved by name in the endpoint's scope.
    - Supports check mode and diff mode.
version_added: "1.0.0"
author: Igor Moraru (@bgtor)
options:
    name:
        description:
            - Name of the stack.
            - Stacks are looked up by name within the selected endpoint and, on swarm
              endpoints, within its swarm cluster.
        type: str
        required: true

    endpoint:
        description:
            - Name of the endpoint to deploy to.
            - Ignored when O(endpoint_id) is set.
            - When neither O(endpoint) nor O(endpoint_id) is set, the only endpoint
              available is used and the task fails if there are several.
        type: str

    endpoint_id:
        description:
            - ID of the endpoint to deploy to.
        type: int

    file:
        description:
            - Path to the stack file (compose file) on the controller.
            - Mutually exclusive with O(content).
            - Required to create a stack. When updating, the stack file currently
              stored in Portainer is sent back if neither O(file) nor O(content) is set.
        type: path

    content:
        description:
            - Stack file content as a string.
            - Mutually exclusive with O(file).
        type: str

    env:
        description:
            - Environment variables for the stack.
            - Entries override those read from O(env_file) with the same name.
        type: list
        elements: dict
        suboptions:
            name:
                description: Variable name.
                type: str
                required: true
            value:
                description: Variable value.
                type: str
                default: ""

    env_file:
        description:
            - Path to a dotenv file with environment variables for the stack.
            - Variables without a value are sent as empty strings.
        type: path

    replace_env:
        description:
            - Replace the stack's environment variables instead of merging the given
              ones into them.
            - Only used when updating a stack.
        type: bool
        default: false

    prune:
        description:
            - Remove services no longer present in the stack file when updating.
        type: bool
        default: false

    state:
        description:
            - V(present) creates or updates the stack.
            - V(absent) removes the stack.
        type: str
        choices: ['present', 'absent']
        default: present

    strict:
        description:
            - Fail when O(state=absent) and the stack does not exist.
        type: bool
        default: false

extends_documentation_fragment:
    - psu.portainer.portainer_client
"""

EXAMPLES = r"""
- name: Deploy a stack from a compose file
  psu.portainer.portainer_stack:
    portainer_url: https://portainer.example.com
    portainer_username: admin
    portainer_password: "{{ portainer_password }}"
    name: web
    endpoint: primary
    file: /srv/stacks/web/docker-compose.yml
    env:
      - name: APP_ENV
        value: production

- name: Change a single variable, keeping the rest and the current stack file
  psu.portainer.portainer_stack:
    portainer_url: https://portainer.example.com
    portainer_token: "{{ portainer_token }}"
    name: web
    endpoint_id: 1
    env:
      - name: IMAGE_TAG
        value: "1.4.2"

- name: Redeploy with variables from a dotenv file, dropping unknown ones
  psu.portainer.portainer_stack:
    portainer_url: https://portainer.example.com
    portainer_token: "{{ portainer_token }}"
    name: web
    endpoint_id: 1
    file: /srv/stacks/web/docker-compose.yml
    env_file: /srv/stacks/web/.env
    replace_env: true
    prune: true

- name: Remove a stack
  psu.portainer.portainer_stack:
    portainer_url: https://portainer.example.com
    portainer_token: "{{ portainer_token }}"
    name: web
    endpoint_id: 1
    state: absent
"""

RETURN = r"""
changed:
    description: Whether the stack was created, updated or removed
    type: bool
    returned: always
    sample: true

action:
    description: What was done to the stack
    type: str
    returned: always
    choices: ['create', 'update', 'delete', 'none']
    sample: "create"

msg:
    description: Human-readable message describing the operation result
    type: str
    returned: always
    sample: "Stack created."

stack:
    description: The stack after the operation
    type: dict
    returned: when the stack exists or was created
    contains:
        Id:
            description: Unique identifier of the stack
            type: int
            sample: 5
        Name:
            description: Name of the stack
            type: str
            sample: "web"
        Type:
            description: Stack type (1=swarm, 2=compose)
            type: int
            sample: 1
        TypeName:
            description: Stack type name
            type: str
            sample: "swarm"
        EndpointId:
            description: ID of the endpoint where the stack is deployed
            type: int
            sample: 1
        SwarmId:
            description: Swarm cluster ID (for swarm stacks)
            type: str
            sample: "jpofkc0i9uo9wtx1zesuk649w"
        Env:
            description: Environment variables of the stack
            type: list
            elements: dict
            sample:
              - name: "APP_ENV"
                value: "production"

diff:
    description: Environment variables before and after the operation
    type: dict
    returned: when diff mode is enabled
    contains:
        before:
            description: Previous environment
            type: dict
            sample: {"Env": [{"name": "APP_ENV", "value": "staging"}]}
        after:
            description: New environment
            type: dict
            sample: {"Env": [{"name": "APP_ENV", "value": "production"}]}
"""

from dotenv import dotenv_values

from ..module_utils.portainer_fields import PortainerFields as PF
from ..module_utils.portainer_module import PortainerModule
from ..module_utils.portainer_models import Endpoint, Pair, pairs_from_list, pairs_to_list
from ..module_utils.portainer_deploy import (
    DeploymentAction,
    DeploymentError,
    DeploymentReconciler,
    DeploymentRequest,
    dedupe_env,
)


class StackManager:
    """
    Runs one stack task: resolves the endpoint, then deploys or removes the
    stack and fills the module results.
    """

    def __init__(self, module: PortainerModule, results: dict) -> None:
        self.module = module
        self.results = results

        self.crud = module.crud
        self.resolver = module.resolver
        self.idempotency = module.idempotency

        self.name = module.params["name"]
        self.state = module.params["state"]
        self.check_mode = module.check_mode

    def run(self) -> None:
        endpoint = self.resolver.get_endpoint(
            name=self.module.params["endpoint"],
            endpoint_id=self.module.params["endpoint_id"],
        )

        if self.state == "present":
            self.ensure_present(endpoint)
        else:
            self.ensure_absent(endpoint)

    def ensure_present(self, endpoint: Endpoint) -> None:
        request = DeploymentRequest(
            name=self.name,
            endpoint=endpoint,
            env=self._get_env(),
            stack_file_content=self._get_stack_file_content(),
            replace_env=self.module.params["replace_env"],
            prune=self.module.params["prune"],
        )

        result = DeploymentReconciler(self.module).reconcile(request, check_mode=self.check_mode)

        self.results["changed"] = True
        self.results["action"] = result.action.value
        self.results["stack"] = result.stack.to_dict()

        if result.action == DeploymentAction.CREATE:
            self.results["msg"] = "Stack created."
        else:
            self.results["msg"] = "Stack updated."

        self._set_diff(result.previous_env, result.env)

    def ensure_absent(self, endpoint: Endpoint) -> None:
        swarm_id = self.resolver.get_endpoint_swarm_id(endpoint)

        try:
            stack = self.resolver.get_stack_by_name(
                self.name, swarm_id=swarm_id, endpoint_id=endpoint.id
            )
        except self.crud.exc.StackNotFound:
            if self.module.params["strict"]:
                self.module.fail_json(msg=f"Stack '{self.name}' not found.", action="none")

            self.results["action"] = "none"
            self.results["msg"] = "Stack does not exist"
            return

        if not self.check_mode:
            self.crud.stack.delete_item_by_id(stack.id, params={PF.STACK_ENDPOINT_ID_QUERY: endpoint.id})

        self.results["changed"] = True
        self.results["action"] = "delete"
        self.results["msg"] = "Stack deleted"
        self.results["stack"] = stack.to_dict()

        self._set_diff(stack.env, [])

    def _set_diff(self, before: list[Pair], after: list[Pair]) -> None:
        if not self.module._diff:
            return

        self.results["diff"] = self.idempotency.build_diff(
            before_data={PF.STACK_ENV: pairs_to_list(before)},
            after_data={PF.STACK_ENV: pairs_to_list(after)},
        )

    def _get_env(self) -> list[Pair]:
        env: list[Pair] = []

        env_file = self.module.params["env_file"]
        if env_file:
            self._read_file_safely(env_file, "env file")
            env.extend(
                Pair(name, "" if value is None else value)
                for name, value in dotenv_values(env_file).items()
            )

        env.extend(pairs_from_list(self.module.params["env"] or []))

        return dedupe_env(env)

    def _get_stack_file_content(self) -> str | None:
        content = self.module.params["content"]
        source = "content"

        filepath = self.module.params["file"]
        if content is None and filepath:
            content = self._read_file_safely(filepath, "stack file").decode("utf-8")
            source = filepath

        if content is not None and not content.strip():
            self.module.fail_json(msg=f"Stack file is empty: {source}")

        return content

    def _read_file_safely(self, filepath: str, description: str = "file") -> bytes:
        try:
            with open(filepath, "rb") as f:
                content = f.read()

            self.module.validate_text_content(content, description, filepath=filepath)

            return content

        except FileNotFoundError:
            self.module.fail_json(msg=f"{description.capitalize()} not found: {filepath}")
        except PermissionError:
            self.module.fail_json(msg=f"Permission denied reading {description}: {filepath}")
        except IOError as e:
            self.module.fail_json(msg=f"Failed to read {description} {filepath}: {str(e)}")


def main():

    argument_spec = PortainerModule.generate_argspec(
        name=dict(type="str", required=True),
        endpoint=dict(type="str"),
        endpoint_id=dict(type="int"),
        file=dict(type="path"),
        content=dict(type="str"),
        env=dict(
            type="list",
            elements="dict",
            options=dict(
                name=dict(type="str", required=True),
                value=dict(type="str", default=""),
            ),
        ),
        env_file=dict(type="path"),
        replace_env=dict(type="bool", default=False),
        prune=dict(type="bool", default=False),
        state=dict(type="str", default="present", choices=["present", "absent"]),
        strict=dict(type="bool", default=False),
    )

    module = PortainerModule(
        argument_spec=argument_spec,
        supports_check_mode=True,
        mutually_exclusive=[("file", "content")],
    )

    module.run_checks()

    try:
        results = dict(changed=False)

        manager = StackManager(module, results)
        manager.run()

        module.exit_json(**results)

    except module.client.exc.PortainerApiError as e:
        module.fail_json(
            msg=f"API request failed: {e}",
            status=e.status,
            body=e.body,
            url=e.url,
            method=e.method,
        )

    except (module.client.exc.PortainerClientError, module.crud.exc.PortainerCRUDException, DeploymentError) as e:
        module.fail_json(msg=str(e))

    except Exception as e:
        module.fail_json(msg=f"Error managing stacks: {str(e)}")


if __name__ == "__main__":
    main()
