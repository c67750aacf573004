from __future__ import annotations

import json
import threading

from urllib.parse import urlencode
from typing import TYPE_CHECKING, Any, Callable
from dataclasses import dataclass, field
from enum import Enum

from ansible.module_utils.urls import fetch_url
from ansible.module_utils.basic import env_fallback

from .portainer_fields import PortainerFields as PF
from .portainer_models import Status

if TYPE_CHECKING:
    from ansible.module_utils.basic import AnsibleModule


COLLECTION_VERSION = "1.0.0"
USER_AGENT = f"psu-portainer/{COLLECTION_VERSION}"


class RequestMethod(Enum):
    GET = "GET"
    PUT = "PUT"
    POST = "POST"
    DELETE = "DELETE"


@dataclass
class GenericError:
    """Error envelope returned by the Portainer API."""

    code: int
    message: str
    details: str = ""

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message

    @classmethod
    def from_body(cls, code: int, body: bytes) -> GenericError | None:
        if not body:
            return None

        try:
            data = json.loads(body)
        except ValueError:
            return None

        if not isinstance(data, dict):
            return None

        message = next((data[k] for k in PF.ERROR_MESSAGE_KEYS if isinstance(data.get(k), str)), None)
        if message is None:
            return None

        details = next((data[k] for k in PF.ERROR_DETAILS_KEYS if isinstance(data.get(k), str)), "")

        return cls(code=code, message=message, details=details)


class PortainerClientError(Exception):
    def __init__(self, message, url: str | None = None, method: str | None = None):
        super().__init__(message)
        self.url = url
        self.method = method


class PortainerTransportError(PortainerClientError):
    pass


class PortainerAuthError(PortainerClientError):
    pass


class PortainerApiError(PortainerClientError):
    def __init__(
        self,
        message,
        status: int | None = None,
        body: Any | None = None,
        url: str | None = None,
        method: str | None = None,
        data: dict | list | None = None,
        error: GenericError | None = None,
    ):
        super().__init__(message, url=url, method=method)
        self.status = status
        self.body = body
        self.data = data
        self.error = error

    @property
    def structured(self) -> bool:
        return self.error is not None

    @property
    def conflict(self) -> bool:
        return self.structured and self.status == 409


@dataclass
class PortainerRequest:
    method: RequestMethod
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    data: dict | list | None = None


@dataclass
class PortainerResponse:
    """A response whose body has been read into memory once."""

    status: int
    body: bytes
    url: str
    msg: str = ""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        if not self.body:
            return None
        return json.loads(self.body)


BeforeRequestHook = Callable[[PortainerRequest], None]
AfterResponseHook = Callable[[PortainerResponse], None]


class PortainerSession:
    """
    Single HTTP round trips against the Portainer API.

    Hooks run in registration order. A hook aborts the request by raising;
    the exception reaches the caller unchanged.
    """

    def __init__(self, module: AnsibleModule):
        self.module = module

        self.base_url = f"{module.params['portainer_url'].rstrip('/')}/api"
        self.timeout = module.params["timeout"]
        self.ca_path = module.params.get("ca_path")

        self.headers = {
            "User-Agent": USER_AGENT,
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }

        self.before_request_hooks: list[BeforeRequestHook] = []
        self.after_response_hooks: list[AfterResponseHook] = []

    def before_request(self, hook: BeforeRequestHook) -> None:
        self.before_request_hooks.append(hook)

    def after_response(self, hook: AfterResponseHook) -> None:
        self.after_response_hooks.append(hook)

    def build_url(self, endpoint: str, params: dict[str, Any] | None = None) -> str:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        if params:
            # Convert booleans to lowercase strings
            params_converted = {
                k: str(v).lower() if isinstance(v, bool) else v for k, v in params.items()
            }
            url = f"{url}?{urlencode(params_converted)}"

        return url

    def send(
        self,
        method: RequestMethod,
        endpoint: str,
        params: dict[str, Any] | None = None,
        data: dict | list | None = None,
        headers: dict[str, str] | None = None,
    ) -> PortainerResponse:
        request = PortainerRequest(
            method=method,
            url=self.build_url(endpoint, params),
            headers={**self.headers, **(headers or {})},
            data=data,
        )

        if request.data is not None:
            request.headers["Content-Type"] = "application/json"

        for hook in self.before_request_hooks:
            hook(request)

        resp, info = fetch_url(
            self.module,
            request.url,
            method=request.method.value,
            headers=request.headers,
            data=None if request.data is None else json.dumps(request.data),
            force=True,
            timeout=self.timeout,
            ca_path=self.ca_path,
        )

        status = info.get("status", -1)
        if status <= 0:
            raise PortainerTransportError(
                info.get("msg", "Connection failure"), url=request.url, method=method.value
            )

        # fetch_url has already consumed the body of error responses into info
        if status >= 300:
            body = info.get("body") or b""
        else:
            body = resp.read() if resp else b""

        if isinstance(body, str):
            body = body.encode("utf-8")

        response = PortainerResponse(status=status, body=body, url=request.url, msg=info.get("msg", ""))

        for after_hook in self.after_response_hooks:
            after_hook(response)

        if response.status >= 300:
            raise self._build_error(request, response)

        return response

    def _build_error(self, request: PortainerRequest, response: PortainerResponse) -> PortainerApiError:
        error = GenericError.from_body(response.status, response.body)

        if error is not None:
            message = str(error)
        else:
            message = response.text.strip() or response.msg or f"HTTP {response.status}"

        return PortainerApiError(
            message,
            status=response.status,
            body=response.text,
            url=request.url,
            method=request.method.value,
            data=request.data,
            error=error,
        )


class PortainerClient:

    class exc:
        PortainerClientError = PortainerClientError
        PortainerTransportError = PortainerTransportError
        PortainerAuthError = PortainerAuthError
        PortainerApiError = PortainerApiError

    ARGSPEC = dict(
        portainer_url=dict(type="str", required=True, fallback=(env_fallback, ["PORTAINER_URL"])),
        portainer_username=dict(
            type="str", aliases=["portainer_user"], fallback=(env_fallback, ["PORTAINER_USER"])
        ),
        portainer_password=dict(
            type="str", no_log=True, fallback=(env_fallback, ["PORTAINER_PASSWORD"])
        ),
        portainer_token=dict(
            type="str", no_log=True, fallback=(env_fallback, ["PORTAINER_AUTH_TOKEN"])
        ),
        validate_certs=dict(type="bool", default=True),
        ca_path=dict(type="path"),
        timeout=dict(type="int", default=30),
    )

    AUTH_ENDPOINT = "/auth"
    STATUS_ENDPOINT = "/status"

    def __init__(self, module: AnsibleModule):
        self.module = module
        self.session = PortainerSession(module)

        self.portainer_url = module.params["portainer_url"].rstrip("/")
        self.username = module.params.get("portainer_username")
        self.password = module.params.get("portainer_password")

        self.token = module.params.get("portainer_token")
        self._token_lock = threading.Lock()

    def authenticate(self, username: str | None = None, password: str | None = None) -> str:
        """Exchange credentials for a bearer token. Never sends a token itself."""
        username = self.username if username is None else username
        password = self.password if password is None else password

        if not username or password is None:
            raise PortainerAuthError(
                "Cannot authenticate: portainer_username and portainer_password are required."
            )

        response = self.session.send(
            RequestMethod.POST,
            self.AUTH_ENDPOINT,
            data={PF.AUTH_USERNAME: username, PF.AUTH_PASSWORD: password},
        )

        data = response.json()
        token = data.get(PF.AUTH_JWT) if isinstance(data, dict) else None

        if not token:
            raise PortainerAuthError(
                "Authentication response did not include a token.",
                url=response.url,
                method=RequestMethod.POST.value,
            )

        return token

    def get_token(self) -> str:
        with self._token_lock:
            if not self.token:
                self.module.debug("Getting auth token...")
                self.token = self.authenticate()
            return self.token

    def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        return self._make_request(RequestMethod.GET, endpoint, params=params)

    def post(
        self,
        endpoint: str,
        data: dict | list | None = None,
        params: dict | None = None,
    ) -> Any:
        return self._make_request(RequestMethod.POST, endpoint, data=data, params=params)

    def put(
        self,
        endpoint: str,
        data: dict | list | None = None,
        params: dict | None = None,
    ) -> Any:
        return self._make_request(RequestMethod.PUT, endpoint, data=data, params=params)

    def delete(self, endpoint: str, params: dict | None = None) -> Any:
        return self._make_request(RequestMethod.DELETE, endpoint, params=params)

    def _make_request(
        self,
        method: RequestMethod,
        endpoint: str,
        params: dict[str, Any] | None = None,
        data: dict | list | None = None,
    ) -> Any:
        """Make an authenticated HTTP request to the Portainer API"""
        headers = {"Authorization": f"Bearer {self.get_token()}"}

        response = self.session.send(method, endpoint, params=params, data=data, headers=headers)

        return response.json()

    def get_status(self) -> Status:
        return Status.from_dict(self.get(self.STATUS_ENDPOINT) or {})

    def ping(self):
        try:
            self.session.send(RequestMethod.GET, self.STATUS_ENDPOINT)
        except PortainerApiError as e:
            self.module.warn("Cannot reach portainer - check IP and port.")
            self.module.fail_json(
                msg=f"Portainer server not reachable: {e}",
                status=e.status,
                body=e.body,
            )
        except PortainerClientError as e:
            self.module.warn("Cannot reach portainer - check IP and port.")
            self.module.fail_json(msg=f"Portainer server not reachable: {e}")
