"""
Versioned HTTP transport for the admin API.

Every request carries the client's known configuration version; every
response is inspected to classify version conflicts and auth failures, and
otherwise to pick up the server's current version. This is optimistic
concurrency on a single server-wide generation token: the server rejects a
write whose version is stale, and the client resynchronises by re-reading.

The transport is an ordered pipeline of stages around one exchange
primitive (``httpx.AsyncClient.send``). Request hooks run first to last,
response hooks last to first. A response hook returns an error value for an
expected condition, which stops the remaining response hooks; the transport
then raises it. Anything else that goes wrong in the exchange propagates
untouched.
"""

import json
from typing import Any, Dict, List, Optional

import httpx

from .config import ClientConfig
from .errors import AdminClientError, Unauthorized, VersionConflict
from .logging import (
    RequestTimer,
    clear_operation_id,
    get_logger,
    get_operation_id,
    set_operation_id,
)
from .metrics import get_metrics
from .registry import VersionCell, get_client_registry

# Marker for "send no body", distinct from a JSON null body
NO_BODY: Any = object()


class ExchangeStage:
    """One step of the request/response pipeline."""

    def on_request(self, request: httpx.Request) -> None:
        pass

    def on_response(
        self, request: httpx.Request, response: httpx.Response
    ) -> Optional[AdminClientError]:
        return None


class VersionTagging(ExchangeStage):
    """Sends the known version and adopts the server's version from responses."""

    def __init__(self, cell: VersionCell, client_header: str, server_header: str):
        self.cell = cell
        self.client_header = client_header
        self.server_header = server_header
        self.logger = get_logger()
        self.metrics = get_metrics()

    def on_request(self, request: httpx.Request) -> None:
        request.headers[self.client_header] = self.cell.version

    def on_response(
        self, request: httpx.Request, response: httpx.Response
    ) -> Optional[AdminClientError]:
        # httpx.Headers lookups are case-insensitive
        server_version = response.headers.get(self.server_header)
        if server_version is None:
            return None

        old_version = self.cell.version
        if self.cell.adopt(server_version):
            self.metrics.record_adoption()
            self.logger.log_version_adopted(old_version, server_version)
        return None


class BearerAuth(ExchangeStage):
    """Attaches a JWT as ``Authorization: Bearer``."""

    def __init__(self, token: str):
        self.token = token

    def on_request(self, request: httpx.Request) -> None:
        request.headers["Authorization"] = f"Bearer {self.token}"


class StatusClassifier(ExchangeStage):
    """Turns the designated conflict and unauthorized statuses into error values."""

    def __init__(
        self, client_header: str, server_header: str, conflict_status: int, unauthorized_status: int
    ):
        self.client_header = client_header
        self.server_header = server_header
        self.conflict_status = conflict_status
        self.unauthorized_status = unauthorized_status
        self.logger = get_logger()
        self.metrics = get_metrics()

    def on_response(
        self, request: httpx.Request, response: httpx.Response
    ) -> Optional[AdminClientError]:
        method = request.method
        path = request.url.path

        if response.status_code == self.conflict_status:
            known_version = request.headers.get(self.client_header, "")
            server_version = response.headers.get(self.server_header)
            self.metrics.record_conflict()
            self.logger.log_version_conflict(method, path, known_version, server_version)
            return VersionConflict(known_version, server_version)

        if response.status_code == self.unauthorized_status:
            self.metrics.record_unauthorized()
            self.logger.log_auth_failure(method, path, response.status_code)
            return Unauthorized(response.status_code, response.text or None)

        return None


class VersionedTransport:
    """
    HTTP transport implementing the admin API's version protocol.

    Owns its ``httpx.AsyncClient`` unless one is passed in. Use as an async
    context manager, or call ``aclose()`` when done.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        version: Optional[VersionCell] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the transport.

        Args:
            config: Client configuration; the registry's active one if omitted
            version: Version handle to share; defaults to the process-wide cell
                when ``config.shared_version`` is set, else a private cell
            client: Pre-built httpx client to send through (not closed by us)
            transport: httpx transport for the owned client, e.g. an ASGI app
        """
        self.config = config or get_client_registry().active_config()
        if version is None:
            version = (
                get_client_registry().version if self.config.shared_version else VersionCell()
            )
        self.version = version

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            verify=self.config.verify_tls,
            transport=transport,
        )

        self.stages: List[ExchangeStage] = [
            VersionTagging(
                self.version, self.config.client_version_header, self.config.server_version_header
            )
        ]
        if self.config.bearer_token:
            self.stages.append(BearerAuth(self.config.bearer_token))
        self.stages.append(
            StatusClassifier(
                self.config.client_version_header,
                self.config.server_version_header,
                self.config.conflict_status,
                self.config.unauthorized_status,
            )
        )

        self.logger = get_logger()
        self.metrics = get_metrics()

    @property
    def known_version(self) -> str:
        return self.version.version

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        body: Any = NO_BODY,
    ) -> httpx.Response:
        """
        Perform one exchange through the pipeline.

        Args:
            method: HTTP method
            path: Path relative to the configured base URL
            params: Query parameters
            body: JSON-serializable body; ``None`` is sent as JSON null

        Returns:
            The successful response

        Raises:
            VersionConflict: the server reported a stale client version
            Unauthorized: the server rejected the credentials
            httpx.HTTPError: any other failure, unchanged
        """
        # Log lines of one call share an operation id unless the caller set one
        owns_operation = get_operation_id() is None
        if owns_operation:
            set_operation_id()
        try:
            return await self._exchange(method, path, params, body)
        finally:
            if owns_operation:
                clear_operation_id()

    async def _exchange(
        self, method: str, path: str, params: Optional[Dict[str, str]], body: Any
    ) -> httpx.Response:
        content = None
        headers = {}
        if body is not NO_BODY:
            content = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"

        request = self._client.build_request(
            method, path, params=params, content=content, headers=headers
        )
        for stage in self.stages:
            stage.on_request(request)

        with RequestTimer(self.logger, method, request.url.path, self.version.version) as timer:
            response = await self._client.send(request)
            timer.set_status_code(response.status_code)

        self.metrics.record_exchange(method, response.status_code, timer.duration_ms)

        # No await between here and the end of classification: the version
        # cell is read and written within this single step.
        for stage in reversed(self.stages):
            outcome = stage.on_response(request, response)
            if outcome is not None:
                raise outcome

        response.raise_for_status()
        return response

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
