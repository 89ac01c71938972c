"""
In-process fake of the admin server.

Implements the server side of the version protocol: reads report the current
version, writes carrying a stale version are refused with 409, and accepted
writes bump the version. Storage is in memory and only covers the routes,
plugin instances and login used by the integration tests.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import httpx
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from gwadmin.client import AdminClient
from gwadmin.config import ClientConfig
from gwadmin.registry import VersionCell

ADMIN = "http://admin.test"
WRITE_METHODS = ("POST", "PUT", "DELETE")


@dataclass
class FakeAdminState:
    version: int = 0
    routes: Dict[Tuple[str, str], Any] = field(default_factory=dict)
    plugins: Dict[Tuple[str, str, str], Any] = field(default_factory=dict)
    access_key: str = "admin"
    secret_key: str = "s3cret"
    token: Optional[str] = None


def plugin_key(request: Request) -> Tuple[str, str, str]:
    params = request.query_params
    if "uid" in params:
        return (params["code"], "uid", params["uid"])
    if "name" in params:
        return (params["code"], "name", params["name"])
    return (params["code"], "mono", "")


def build_admin_app(state: FakeAdminState) -> FastAPI:
    app = FastAPI()

    @app.middleware("http")
    async def version_control(request: Request, call_next):
        if state.token is not None and request.url.path != "/auth/login":
            bearer = request.headers.get("Authorization", "")
            if bearer != f"Bearer {state.token}" and request.cookies.get("jwt") != state.token:
                return Response(status_code=401, content="missing or invalid token")

        if request.method in WRITE_METHODS and request.url.path != "/auth/login":
            client_version = request.headers.get("X-Client-Version", "0")
            if client_version != str(state.version):
                return Response(
                    status_code=409, headers={"X-Server-Version": str(state.version)}
                )
            state.version += 1
            return await call_next(request)

        version = state.version
        response = await call_next(request)
        if request.method == "GET":
            response.headers["X-Server-Version"] = str(version)
        return response

    @app.post("/auth/login")
    async def login(request: Request):
        body = await request.json()
        if body.get("ak") != state.access_key or body.get("sk") != state.secret_key:
            return Response(status_code=401, content="bad credentials")
        response = Response(status_code=200)
        if state.token is not None:
            response.set_cookie("jwt", state.token, httponly=True)
        return response

    @app.get("/config/item/{gateway}/route/item/{route}")
    async def get_route(gateway: str, route: str):
        return JSONResponse(state.routes.get((gateway, route)))

    @app.post("/config/item/{gateway}/route/item/{route}")
    @app.put("/config/item/{gateway}/route/item/{route}")
    async def write_route(gateway: str, route: str, request: Request):
        state.routes[(gateway, route)] = await request.json()
        return Response(status_code=200)

    @app.delete("/config/item/{gateway}/route/item/{route}")
    async def delete_route(gateway: str, route: str):
        state.routes.pop((gateway, route), None)
        return Response(status_code=200)

    @app.get("/config/item/{gateway}/route/names")
    async def route_names(gateway: str):
        return JSONResponse(sorted(name for gw, name in state.routes if gw == gateway))

    @app.get("/config/plugin")
    async def get_plugin(request: Request):
        key = plugin_key(request)
        if key not in state.plugins:
            return JSONResponse(None)
        return JSONResponse(state.plugins[key])

    @app.post("/config/plugin")
    @app.put("/config/plugin")
    async def write_plugin(request: Request):
        state.plugins[plugin_key(request)] = await request.json()
        return Response(status_code=200)

    @app.delete("/config/plugin")
    async def delete_plugin(request: Request):
        state.plugins.pop(plugin_key(request), None)
        return Response(status_code=200)

    @app.get("/discovery/instance/list")
    async def instance_list():
        return JSONResponse(["gateway-1"])

    return app


@pytest.fixture
def admin_state():
    return FakeAdminState()


@pytest.fixture
def admin_app(admin_state):
    return build_admin_app(admin_state)


@pytest.fixture
def make_client(admin_app):
    """Factory for clients talking to the fake server in-process."""

    def factory(version: Optional[VersionCell] = None, **overrides) -> AdminClient:
        overrides.setdefault("shared_version", False)
        config = ClientConfig(base_url=ADMIN, **overrides)
        return AdminClient(config, version=version, transport=httpx.ASGITransport(app=admin_app))

    return factory
