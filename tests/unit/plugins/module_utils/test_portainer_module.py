# -*- coding: utf-8 -*-
# Author: Igor Moraru (@bgtor)
# License: GPL-3.0-or-later
# GNU General Public License v3.0+ (see COPYING or https://www.gnu.org/licenses/gpl-3.0.txt)

from __future__ import annotations

import json

import pytest

from plugins.module_utils.portainer_module import IdempotencyManager
from plugins.module_utils.portainer_client import RequestMethod
from tests.unit.plugins.conftest import MockMakeRequest, PortainerModuleFixture

pytestmark = pytest.mark.usefixtures("patch_ansible_module", "portainer_module")


def test_build_diffs_handles_none_data(portainer_module: PortainerModuleFixture):

    module = portainer_module()

    idem = IdempotencyManager(module)

    diff = idem.build_diff(before_data=None, after_data=None)

    assert diff == {"before": {}, "after": {}}


def test_build_diffs_overlays_after_data(portainer_module: PortainerModuleFixture):

    module = portainer_module()

    diff = module.idempotency.build_diff(
        before_data={"Env": [{"name": "A", "value": "1"}], "Name": "web"},
        after_data={"Env": [{"name": "A", "value": "2"}]},
        skip_fields=["Name"],
    )

    assert diff["before"] == {"Env": [{"name": "A", "value": "1"}]}
    assert diff["after"] == {"Env": [{"name": "A", "value": "2"}]}


@pytest.mark.parametrize(
    "patch_ansible_module",
    [{"ANSIBLE_MODULE_ARGS": {"portainer_url": "https://portainer.example.com"}}],
    indirect=True,
)
def test_module_requires_username_or_token(
    portainer_module: PortainerModuleFixture, capfd: pytest.CaptureFixture
):
    with pytest.raises(SystemExit) as e:
        portainer_module()

    assert e.value.code == 1

    result = json.loads(capfd.readouterr()[0])
    assert "portainer_username" in result["msg"]


@pytest.mark.parametrize(
    "patch_ansible_module",
    [{"portainer_username": "admin"}],
    indirect=True,
)
def test_module_requires_password_with_username(
    portainer_module: PortainerModuleFixture, capfd: pytest.CaptureFixture
):
    with pytest.raises(SystemExit) as e:
        portainer_module()

    assert e.value.code == 1

    result = json.loads(capfd.readouterr()[0])
    assert "portainer_password" in result["msg"]


def test_module_traces_requests(
    mock_make_request: MockMakeRequest, portainer_module: PortainerModuleFixture
):
    mock_make_request(
        {
            f"{RequestMethod.GET} /endpoints": {"data": [], "status": 200},
        }
    )

    module = portainer_module()
    messages = []
    module.debug = messages.append

    module.client.get("/endpoints")

    assert messages == [
        "Portainer request: GET https://portainer.example.com/api/endpoints",
        "Portainer response: 200 https://portainer.example.com/api/endpoints",
    ]


def test_run_checks_skips_ping_in_check_mode(
    mock_make_request: MockMakeRequest, portainer_module: PortainerModuleFixture
):
    call_logs = mock_make_request({})

    module = portainer_module()
    module.check_mode = True

    module.run_checks()

    assert len(call_logs) == 0


@pytest.mark.parametrize(
    "content, valid",
    [
        (b"version: '3'\nservices: {}\n", True),
        (b"\xff\xfe\x00", False),
        (b"abc\x00def", False),
        (b"\x01\x02\x03\x04a", False),
    ],
)
def test_validate_text_content(portainer_module: PortainerModuleFixture, content, valid):
    module = portainer_module()

    is_valid, error = module.validate_text_content(content, "stack file", fail_on_error=False)

    assert is_valid is valid
    assert (error is None) is valid
