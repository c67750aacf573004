# -*- coding: utf-8 -*-
# Author: Igor Moraru (@bgtor)
# License: GPL-3.0-or-later
# GNU General Public License v3.0+ (see COPYING or https://www.gnu.org/licenses/gpl-3.0.txt)

from __future__ import annotations

import pytest

from plugins.module_utils.portainer_client import RequestMethod
from plugins.module_utils.portainer_deploy import (
    DeploymentAction,
    DeploymentReconciler,
    DeploymentRequest,
    StackFileContentRequired,
    dedupe_env,
    merge_env,
)
from plugins.module_utils.portainer_models import Endpoint, Pair
from tests.unit.plugins.conftest import MockMakeRequest, PortainerModuleFixture

pytestmark = pytest.mark.usefixtures("patch_ansible_module", "mock_make_request")


ENDPOINT = Endpoint(id=1, name="primary")

SWARM_INFO = {"Swarm": {"Cluster": {"ID": "swarm-1"}}}
STANDALONE_INFO = {"Swarm": {"LocalNodeState": "inactive"}}

WEB_STACK = {
    "Id": 5,
    "Name": "web",
    "Type": 1,
    "EndpointId": 1,
    "SwarmId": "swarm-1",
    "Env": [{"name": "FOO", "value": "1"}],
}


@pytest.mark.parametrize(
    "existing, desired, expected",
    [
        ([], [], []),
        ([Pair("A", "1")], [], [Pair("A", "1")]),
        ([], [Pair("A", "1")], [Pair("A", "1")]),
        (
            [Pair("FOO", "1")],
            [Pair("FOO", "2"), Pair("BAR", "3")],
            [Pair("FOO", "2"), Pair("BAR", "3")],
        ),
        (
            [Pair("A", "1"), Pair("B", "2"), Pair("C", "3")],
            [Pair("D", "4"), Pair("B", "x")],
            [Pair("A", "1"), Pair("B", "x"), Pair("C", "3"), Pair("D", "4")],
        ),
        (
            [Pair("A", "1")],
            [Pair("A", "2"), Pair("A", "3")],
            [Pair("A", "3")],
        ),
    ],
)
def test_merge_env(existing, desired, expected):
    assert merge_env(existing, desired) == expected


def test_merge_env_does_not_mutate_inputs():
    existing = [Pair("A", "1")]
    desired = [Pair("A", "2")]

    merge_env(existing, desired)

    assert existing == [Pair("A", "1")]
    assert desired == [Pair("A", "2")]


def test_merge_env_keeps_every_existing_name():
    existing = [Pair("A", "1"), Pair("B", "2")]

    merged = merge_env(existing, [Pair("C", "3")])

    assert [p.name for p in merged][: len(existing)] == ["A", "B"]


def test_dedupe_env():
    assert dedupe_env([Pair("A", "1"), Pair("B", "2"), Pair("A", "3")]) == [
        Pair("A", "3"),
        Pair("B", "2"),
    ]


def test_create_swarm_stack(
    mock_make_request: MockMakeRequest, portainer_module: PortainerModuleFixture
):
    call_logs = mock_make_request(
        {
            f"{RequestMethod.GET} /endpoints/1/docker/info": {"data": SWARM_INFO, "status": 200},
            f"{RequestMethod.GET} /stacks": {"data": [], "status": 200},
            f"{RequestMethod.POST} /stacks": {
                "data": {"Id": 7, "Name": "web", "Type": 1, "EndpointId": 1, "SwarmId": "swarm-1"},
                "status": 200,
            },
        }
    )

    module = portainer_module()

    result = DeploymentReconciler(module).reconcile(
        DeploymentRequest(name="web", endpoint=ENDPOINT, stack_file_content="c1")
    )

    assert result.action == DeploymentAction.CREATE
    assert result.stack.id == 7
    assert result.swarm_id == "swarm-1"

    create = call_logs.assert_called_with(
        RequestMethod.POST,
        "/stacks",
        params={"type": "1", "method": "string", "endpointId": "1"},
    )[0]
    assert create.data == {"Name": "web", "StackFileContent": "c1", "SwarmID": "swarm-1"}

    # swarm detection runs once per deployment
    assert len(call_logs.filter(RequestMethod.GET, "/endpoints/1/docker/info")) == 1


@pytest.mark.parametrize("info", [STANDALONE_INFO, {"Swarm": {"Cluster": {"ID": ""}}}])
def test_create_compose_stack(
    mock_make_request: MockMakeRequest, portainer_module: PortainerModuleFixture, info
):
    call_logs = mock_make_request(
        {
            f"{RequestMethod.GET} /endpoints/1/docker/info": {"data": info, "status": 200},
            f"{RequestMethod.GET} /stacks": {"data": [], "status": 200},
            f"{RequestMethod.POST} /stacks": {
                "data": {"Id": 8, "Name": "web", "Type": 2, "EndpointId": 1},
                "status": 200,
            },
        }
    )

    module = portainer_module()

    result = DeploymentReconciler(module).reconcile(
        DeploymentRequest(
            name="web",
            endpoint=ENDPOINT,
            env=[Pair("APP_ENV", "production")],
            stack_file_content="c2",
        )
    )

    assert result.action == DeploymentAction.CREATE
    assert result.stack.type_name == "compose"

    create = call_logs.assert_called_with(RequestMethod.POST, "/stacks", params={"type": "2"})[0]
    assert create.data == {
        "Name": "web",
        "StackFileContent": "c2",
        "Env": [{"name": "APP_ENV", "value": "production"}],
    }

    list_call = call_logs.assert_called_with(RequestMethod.GET, "/stacks")[0]
    assert list_call.params == {"filters": '{"EndpointId":1}'}


def test_create_requires_stack_file_content(
    mock_make_request: MockMakeRequest, portainer_module: PortainerModuleFixture
):
    call_logs = mock_make_request(
        {
            f"{RequestMethod.GET} /endpoints/1/docker/info": {"data": SWARM_INFO, "status": 200},
            f"{RequestMethod.GET} /stacks": {"data": [], "status": 200},
        }
    )

    module = portainer_module()

    with pytest.raises(StackFileContentRequired):
        DeploymentReconciler(module).reconcile(DeploymentRequest(name="web", endpoint=ENDPOINT))

    call_logs.assert_not_called(RequestMethod.POST, "/stacks")


def test_update_merges_env(
    mock_make_request: MockMakeRequest, portainer_module: PortainerModuleFixture
):
    call_logs = mock_make_request(
        {
            f"{RequestMethod.GET} /endpoints/1/docker/info": {"data": SWARM_INFO, "status": 200},
            f"{RequestMethod.GET} /stacks": {"data": [WEB_STACK], "status": 200},
            f"{RequestMethod.GET} /stacks/5/file": {
                "data": {"StackFileContent": "stored"},
                "status": 200,
            },
            f"{RequestMethod.PUT} /stacks/5": {"data": WEB_STACK, "status": 200},
        }
    )

    module = portainer_module()

    result = DeploymentReconciler(module).reconcile(
        DeploymentRequest(
            name="web",
            endpoint=ENDPOINT,
            env=[Pair("FOO", "2"), Pair("BAR", "3")],
        )
    )

    assert result.action == DeploymentAction.UPDATE
    assert result.previous_env == [Pair("FOO", "1")]
    assert result.env == [Pair("FOO", "2"), Pair("BAR", "3")]
    assert result.stack.env == result.env

    update = call_logs.assert_called_with(
        RequestMethod.PUT, "/stacks/5", params={"endpointId": "1"}
    )[0]
    assert update.data == {
        "StackFileContent": "stored",
        "Prune": False,
        "Env": [{"name": "FOO", "value": "2"}, {"name": "BAR", "value": "3"}],
    }
    call_logs.assert_not_called(RequestMethod.POST, "/stacks")


def test_update_replaces_env(
    mock_make_request: MockMakeRequest, portainer_module: PortainerModuleFixture
):
    call_logs = mock_make_request(
        {
            f"{RequestMethod.GET} /endpoints/1/docker/info": {"data": SWARM_INFO, "status": 200},
            f"{RequestMethod.GET} /stacks": {"data": [WEB_STACK], "status": 200},
            f"{RequestMethod.PUT} /stacks/5": {"data": WEB_STACK, "status": 200},
        }
    )

    module = portainer_module()

    result = DeploymentReconciler(module).reconcile(
        DeploymentRequest(
            name="web",
            endpoint=ENDPOINT,
            env=[Pair("BAR", "3")],
            stack_file_content="c3",
            replace_env=True,
            prune=True,
        )
    )

    assert result.env == [Pair("BAR", "3")]

    update = call_logs.assert_called_with(RequestMethod.PUT, "/stacks/5")[0]
    assert update.data == {
        "StackFileContent": "c3",
        "Prune": True,
        "Env": [{"name": "BAR", "value": "3"}],
    }
    call_logs.assert_not_called(RequestMethod.GET, "/stacks/5/file")


def test_update_with_empty_env_omits_env(
    mock_make_request: MockMakeRequest, portainer_module: PortainerModuleFixture
):
    call_logs = mock_make_request(
        {
            f"{RequestMethod.GET} /endpoints/1/docker/info": {"data": SWARM_INFO, "status": 200},
            f"{RequestMethod.GET} /stacks": {"data": [dict(WEB_STACK, Env=None)], "status": 200},
            f"{RequestMethod.PUT} /stacks/5": {"data": WEB_STACK, "status": 200},
        }
    )

    module = portainer_module()

    DeploymentReconciler(module).reconcile(
        DeploymentRequest(name="web", endpoint=ENDPOINT, stack_file_content="c1")
    )

    update = call_logs.assert_called_with(RequestMethod.PUT, "/stacks/5")[0]
    assert "Env" not in update.data


def test_reconcile_check_mode_sends_nothing(
    mock_make_request: MockMakeRequest, portainer_module: PortainerModuleFixture
):
    call_logs = mock_make_request(
        {
            f"{RequestMethod.GET} /endpoints/1/docker/info": {"data": SWARM_INFO, "status": 200},
            f"{RequestMethod.GET} /stacks": [
                {"data": [], "status": 200},
                {"data": [WEB_STACK], "status": 200},
            ],
        }
    )

    module = portainer_module()
    reconciler = DeploymentReconciler(module)

    created = reconciler.reconcile(
        DeploymentRequest(name="web", endpoint=ENDPOINT, stack_file_content="c1"),
        check_mode=True,
    )
    updated = reconciler.reconcile(
        DeploymentRequest(name="web", endpoint=ENDPOINT, env=[Pair("FOO", "2")]),
        check_mode=True,
    )

    assert created.action == DeploymentAction.CREATE
    assert created.stack.type_name == "swarm"
    assert updated.action == DeploymentAction.UPDATE
    assert updated.env == [Pair("FOO", "2")]

    call_logs.assert_not_called(RequestMethod.POST)
    call_logs.assert_not_called(RequestMethod.PUT)
    call_logs.assert_not_called(RequestMethod.GET, "/stacks/5/file")
