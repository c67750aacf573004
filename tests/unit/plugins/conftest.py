from __future__ import annotations

import io
import json
import pytest

from unittest import mock
from typing import Any, Callable, Iterator, TypedDict, Union
from contextlib import contextmanager
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, urlsplit

from ansible.module_utils.common.text.converters import to_bytes
from ansible.module_utils.common._collections_compat import MutableMapping
from plugins.module_utils import portainer_client
from plugins.module_utils.portainer_module import PortainerModule
from plugins.module_utils.portainer_client import RequestMethod


def portainer_default_options():
    return {
        "portainer_url": "https://portainer.example.com",
        "portainer_token": "secret-token",
    }


@contextmanager
def set_module_args(module_args: dict[str, Any]) -> Iterator[dict[str, Any]]:
    """Patch the arguments the next AnsibleModule reads."""
    module_args.setdefault("_ansible_remote_tmp", "/tmp")
    module_args.setdefault("_ansible_keep_remote_files", False)

    # Try to use official testing utility first
    try:
        from ansible.module_utils.testing import patch_module_args
    except ImportError:
        patch_module_args = None

    if patch_module_args is not None:
        with patch_module_args(module_args):
            yield module_args
    else:
        # Fallback for older Ansible versions
        payload = to_bytes(json.dumps({"ANSIBLE_MODULE_ARGS": module_args}))
        with mock.patch("ansible.module_utils.basic._ANSIBLE_ARGS", payload):
            yield module_args


@pytest.fixture
def patch_ansible_module(request):
    """Fixture to patch Ansible module arguments"""
    args: dict[str, Any] = portainer_default_options()

    if hasattr(request, "param") and isinstance(request.param, MutableMapping):
        args.update(request.param)

    # A full "ANSIBLE_MODULE_ARGS" mapping replaces the default options
    module_args = args["ANSIBLE_MODULE_ARGS"] if "ANSIBLE_MODULE_ARGS" in args else args

    with set_module_args(module_args) as patched:
        yield patched


PortainerModuleFixture = Callable[..., PortainerModule]


@pytest.fixture
def portainer_module() -> PortainerModuleFixture:
    """Create a PortainerModule instance"""

    def _create(**kwargs):
        return PortainerModule(
            argument_spec=PortainerModule.generate_argspec(**kwargs),
            supports_check_mode=True,
        )

    return _create


class EndpointResponse(TypedDict, total=False):
    data: Any
    status: int
    raw: str


@dataclass
class CallLog:
    method: RequestMethod
    endpoint: str
    params: dict | None = None
    data: dict | list | None = None
    headers: dict = field(default_factory=dict)


@dataclass
class CallLogs:
    logs: list[CallLog] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.logs)

    def __getitem__(self, index):
        return self.logs[index]

    def append(self, log: CallLog):
        self.logs.append(log)

    def filter(self, method: RequestMethod | None = None, endpoint: str | None = None) -> list[CallLog]:
        return [
            log
            for log in self.logs
            if (method is None or log.method == method)
            and (endpoint is None or log.endpoint == endpoint)
        ]

    def assert_called_with(
        self,
        method: RequestMethod | None = None,
        endpoint: str | None = None,
        params: dict | None = None,
        data: dict | None = None,
    ):
        called = []
        for log in self.filter(method, endpoint):
            if params and not (params.items() <= (log.params or {}).items()):
                continue
            if data and not (isinstance(log.data, dict) and data.items() <= log.data.items()):
                continue

            called.append(log)

        if not called:
            raise AssertionError("Endpoint was not called with provided arguments.")

        return called

    def assert_not_called(self, method: RequestMethod | None = None, endpoint: str | None = None):
        if self.filter(method, endpoint):
            raise AssertionError(f"Endpoint {method} {endpoint} was called.")


EndpointResponses = Union[list[EndpointResponse], EndpointResponse]
MockMakeRequest = Callable[[dict[str, EndpointResponses]], CallLogs]


STATUS_RESPONSE: EndpointResponse = {"data": {"Version": "2.19.4"}, "status": 200}


@pytest.fixture
def mock_make_request(monkeypatch) -> MockMakeRequest:

    def _mock_request(endpoint_responses):
        """
        Mock fetch_url of the Portainer client with flexible endpoint matching.

        Args:
            endpoint_responses: Dict mapping endpoints to responses.
                - Keys can be "METHOD /endpoint" or just "/endpoint"
                - Values can be:
                    * Single dict: Returns same response for ALL calls (reusable)
                    * List of dicts: Returns responses in sequence (exhaustible)
                - Each response dict has 'data' and optionally 'status' keys.
                  'raw' replaces the JSON encoded data with a literal body.
                  A status of -1 simulates a connection failure.

        Examples:
            # Single response - reused for all calls
            {
                f"{RequestMethod.GET} /endpoints": {"data": [{"Id": 1}], "status": 200}
            }

            # Multiple sequential responses
            {
                f"{RequestMethod.POST} /stacks": [
                    {"data": {"message": "Conflict"}, "status": 409},
                    {"data": {"Id": 2}, "status": 200},
                ]
            }

        "GET /status" answers the module's reachability check unless it is
        given explicitly.
        """
        call_logs = CallLogs()

        responses = dict(endpoint_responses)
        if f"{RequestMethod.GET} /status" not in responses and "/status" not in responses:
            responses[f"{RequestMethod.GET} /status"] = STATUS_RESPONSE

        response_queues = {}
        for key, value in responses.items():
            is_list = isinstance(value, list)
            response_queues[key] = {
                "response_queue": value if is_list else [value],
                "multiple": is_list,
                "call_count": 0,
            }

        def _fake_fetch_url(module, url, method=None, headers=None, data=None, **kwargs):
            parsed = urlsplit(url)
            endpoint = parsed.path
            if endpoint.startswith("/api"):
                endpoint = endpoint[len("/api"):]

            request_method = RequestMethod(method)
            params = dict(parse_qsl(parsed.query)) or None

            call_logs.append(
                CallLog(
                    method=request_method,
                    endpoint=endpoint,
                    params=params,
                    data=json.loads(data) if data else None,
                    headers=dict(headers or {}),
                )
            )

            # Try exact match first (with method), then fallback to endpoint-only
            key = f"{request_method} {endpoint}"
            if key not in response_queues:
                key = endpoint

            if key not in response_queues:
                raise KeyError(
                    f"No mock response defined for '{request_method} {endpoint}'. "
                    f"Available: {list(response_queues.keys())}"
                )

            queue_info = response_queues[key]
            call_count = queue_info["call_count"]
            response_queue = queue_info["response_queue"]
            multiple = queue_info["multiple"]

            # Check if we've exhausted the response queue (only for sequential responses)
            if multiple and call_count >= len(response_queue):
                raise IndexError(
                    f"Mock for '{key}' called {call_count + 1} time(s) "
                    f"but only {len(response_queue)} response(s) defined. "
                    f"Hint: Use a single dict (not a list) if the response should be reused."
                )

            # Sequential: use next response; Reusable: always use first response
            response = response_queue[call_count] if multiple else response_queue[0]
            queue_info["call_count"] += 1

            status = response.get("status", 200)

            if status <= 0:
                return None, {"status": -1, "msg": "Request failed: <urlopen error [Errno 111] Connection refused>", "url": url}

            if "raw" in response:
                body = response["raw"].encode("utf-8")
            elif response.get("data") is None or status == 204:
                body = b""
            else:
                body = json.dumps(response["data"]).encode("utf-8")

            if status >= 300:
                return None, {"status": status, "msg": f"HTTP Error {status}: Error", "body": body, "url": url}

            return io.BytesIO(body), {"status": status, "msg": "OK", "url": url}

        monkeypatch.setattr(portainer_client, "fetch_url", _fake_fetch_url)
        return call_logs

    return _mock_request
