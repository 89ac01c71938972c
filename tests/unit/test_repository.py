import json

import httpx
import pytest
import respx

from gwadmin.client import AdminClient
from gwadmin.config import ClientConfig
from gwadmin.errors import VersionConflict
from gwadmin.identity import AnonPluginId, MonoPluginId, NamedPluginId
from gwadmin.models import Config, ConfigItem, Gateway, PluginConfig, Route

ADMIN = "http://admin.test"

ROUTE = {
    "route_name": "api",
    "hostnames": ["example.com"],
    "plugins": [{"code": "cors"}],
    "rules": [{"plugins": [], "backends": [{"port": 8080, "weight": 1}], "timeout_ms": 1000}],
    "priority": 20,
}


def make_client(**overrides) -> AdminClient:
    return AdminClient(ClientConfig(base_url=ADMIN, shared_version=False, **overrides))


def sent_json(route, index=-1):
    return json.loads(route.calls[index].request.content)


class TestRoutes:
    @pytest.mark.asyncio
    async def test_get_route(self):
        with respx.mock(assert_all_called=True) as mock:
            mock.get(f"{ADMIN}/config/item/gw/route/item/api").respond(200, json=ROUTE)

            async with make_client() as client:
                route = await client.config.get_route("gw", "api")

        assert route.priority == 20
        assert route.rules[0].backends[0].weight == 1

    @pytest.mark.asyncio
    async def test_get_missing_route_returns_none(self):
        with respx.mock(assert_all_called=True) as mock:
            mock.get(f"{ADMIN}/config/item/gw/route/item/nope").respond(200, content=b"null")

            async with make_client() as client:
                assert await client.config.get_route("gw", "nope") is None

    @pytest.mark.asyncio
    async def test_write_route_sends_full_entity(self):
        route = Route.model_validate(ROUTE)

        with respx.mock(assert_all_called=True) as mock:
            post = mock.post(f"{ADMIN}/config/item/gw/route/item/api").respond(200)
            put = mock.put(f"{ADMIN}/config/item/gw/route/item/api").respond(200)
            delete = mock.delete(f"{ADMIN}/config/item/gw/route/item/api").respond(200)

            async with make_client() as client:
                await client.config.post_route("gw", "api", route)
                await client.config.put_route("gw", "api", route)
                await client.config.delete_route("gw", "api")

        assert sent_json(post) == ROUTE
        assert sent_json(put)["priority"] == 20
        assert delete.calls.last.request.content == b""

    @pytest.mark.asyncio
    async def test_path_segments_are_percent_encoded(self):
        with respx.mock(assert_all_called=True) as mock:
            route = mock.get(f"{ADMIN}/config/item/my%20gw/route/item/a%2Fb").respond(200, content=b"null")

            async with make_client() as client:
                await client.config.get_route("my gw", "a/b")

        assert route.calls.last.request.url.raw_path == b"/config/item/my%20gw/route/item/a%2Fb"

    @pytest.mark.asyncio
    async def test_route_collections(self):
        with respx.mock(assert_all_called=True) as mock:
            mock.get(f"{ADMIN}/config/item/gw/route/names").respond(200, json=["api", "web"])
            mock.get(f"{ADMIN}/config/item/gw/route/all").respond(200, json={"api": ROUTE})
            delete_all = mock.delete(f"{ADMIN}/config/item/gw/route/all").respond(200)

            async with make_client() as client:
                assert await client.config.get_route_names("gw") == ["api", "web"]
                routes = await client.config.get_all_routes("gw")
                await client.config.delete_all_routes("gw")

        assert routes["api"].name == "api"
        assert delete_all.called


class TestConfigItems:
    @pytest.mark.asyncio
    async def test_whole_config(self):
        config = Config(api_port=9991)

        with respx.mock(assert_all_called=True) as mock:
            mock.get(f"{ADMIN}/config").respond(200, json={"gateways": {}, "plugins": {}})
            post = mock.post(f"{ADMIN}/config").respond(200)
            put = mock.put(f"{ADMIN}/config").respond(200)
            mock.get(f"{ADMIN}/config/names").respond(200, json=["gw"])

            async with make_client() as client:
                assert await client.config.get_config() == Config()
                await client.config.post_config(config)
                await client.config.put_config(config)
                assert await client.config.get_config_names() == ["gw"]

        assert sent_json(post) == {"gateways": {}, "plugins": {}, "api_port": 9991}
        assert sent_json(put) == sent_json(post)

    @pytest.mark.asyncio
    async def test_config_item_and_gateway(self):
        item = ConfigItem(gateway=Gateway(name="gw"), routes={"api": Route.model_validate(ROUTE)})

        with respx.mock(assert_all_called=True) as mock:
            mock.get(f"{ADMIN}/config/item/gw").respond(200, json=item.to_wire())
            post_item = mock.post(f"{ADMIN}/config/item/gw").respond(200)
            mock.put(f"{ADMIN}/config/item/gw").respond(200)
            mock.delete(f"{ADMIN}/config/item/gw").respond(200)
            mock.get(f"{ADMIN}/config/item/gw/gateway").respond(200, json={"name": "gw"})
            post_gw = mock.post(f"{ADMIN}/config/item/gw/gateway").respond(200)
            mock.put(f"{ADMIN}/config/item/gw/gateway").respond(200)
            mock.delete(f"{ADMIN}/config/item/gw/gateway").respond(200)

            async with make_client() as client:
                assert await client.config.get_config_item("gw") == item
                await client.config.post_config_item("gw", item)
                await client.config.put_config_item("gw", item)
                await client.config.delete_config_item("gw")
                assert (await client.config.get_gateway("gw")).name == "gw"
                await client.config.post_gateway("gw", item.gateway)
                await client.config.put_gateway("gw", item.gateway)
                await client.config.delete_gateway("gw")

        assert sent_json(post_item)["routes"]["api"]["priority"] == 20
        assert sent_json(post_gw)["name"] == "gw"


class TestPlugins:
    @pytest.mark.asyncio
    async def test_get_plugin_by_each_identity_variant(self):
        with respx.mock(assert_all_called=True) as mock:
            route = mock.get(f"{ADMIN}/config/plugin").respond(200, json={"rps": 5})

            async with make_client() as client:
                await client.config.get_plugin(AnonPluginId(code="limit", uid=2**63 + 7))
                await client.config.get_plugin(NamedPluginId(code="limit", name="per-ip"))
                await client.config.get_plugin(MonoPluginId(code="cors"))

        queries = [dict(call.request.url.params) for call in route.calls]
        assert queries == [
            {"code": "limit", "uid": str(2**63 + 7)},
            {"code": "limit", "name": "per-ip"},
            {"code": "cors"},
        ]

    @pytest.mark.asyncio
    async def test_get_plugin_accepts_bare_spec_or_full_record(self):
        identity = NamedPluginId(code="limit", name="per-ip")

        with respx.mock(assert_all_called=True) as mock:
            mock.get(f"{ADMIN}/config/plugin").mock(
                side_effect=[
                    httpx.Response(200, json={"rps": 5}),
                    httpx.Response(
                        200, json={"code": "limit", "name": "per-ip", "spec": {"rps": 6}}
                    ),
                    httpx.Response(200, content=b"null"),
                ]
            )

            async with make_client() as client:
                bare = await client.config.get_plugin(identity)
                full = await client.config.get_plugin({"code": "limit", "name": "per-ip"})
                missing = await client.config.get_plugin(identity)

        assert bare == PluginConfig(id=identity, spec={"rps": 5})
        assert full == PluginConfig(id=identity, spec={"rps": 6})
        assert missing is None

    @pytest.mark.asyncio
    async def test_write_plugin_sends_spec_as_body(self):
        plugin = PluginConfig(id=AnonPluginId(code="limit", uid=42), spec={"rps": 5})
        empty = PluginConfig(id=MonoPluginId(code="cors"), spec=None)

        with respx.mock(assert_all_called=True) as mock:
            post = mock.post(f"{ADMIN}/config/plugin").respond(200)
            put = mock.put(f"{ADMIN}/config/plugin").respond(200)
            delete = mock.delete(f"{ADMIN}/config/plugin").respond(200)

            async with make_client() as client:
                await client.config.post_plugin(plugin)
                await client.config.put_plugin(empty)
                await client.config.delete_plugin(plugin)
                await client.config.delete_plugin(NamedPluginId(code="limit", name="x"))

        assert dict(post.calls.last.request.url.params) == {"code": "limit", "uid": "42"}
        assert sent_json(post) == {"rps": 5}
        assert dict(put.calls.last.request.url.params) == {"code": "cors"}
        assert put.calls.last.request.content == b"null"
        assert [dict(c.request.url.params) for c in delete.calls] == [
            {"code": "limit", "uid": "42"},
            {"code": "limit", "name": "x"},
        ]

    @pytest.mark.asyncio
    async def test_get_plugin_spec_shaped_like_a_record_stays_a_spec(self):
        identity = NamedPluginId(code="redirect", name="r1")
        lookalikes = [
            {"code": 301, "spec": "strict"},
            {"code": "redirect", "name": "other", "spec": "strict"},
            {"code": "redirect", "uid": 1, "name": "r1", "spec": "strict"},
        ]

        with respx.mock(assert_all_called=True) as mock:
            mock.get(f"{ADMIN}/config/plugin").mock(
                side_effect=[httpx.Response(200, json=spec) for spec in lookalikes]
            )

            async with make_client() as client:
                fetched = [await client.config.get_plugin(identity) for _ in lookalikes]

        assert fetched == [PluginConfig(id=identity, spec=spec) for spec in lookalikes]

    @pytest.mark.asyncio
    async def test_mapping_identity_with_uid_and_name_is_rejected(self):
        with respx.mock(assert_all_called=False) as mock:
            route = mock.delete(f"{ADMIN}/config/plugin").respond(200)

            async with make_client() as client:
                with pytest.raises(ValueError):
                    await client.config.delete_plugin({"code": "limit", "uid": 1, "name": "x"})
                with pytest.raises(ValueError):
                    await client.config.get_plugin({"code": "limit", "uid": 1, "name": "x"})

        assert not route.called

    @pytest.mark.asyncio
    async def test_delete_plugin_by_mapping(self):
        with respx.mock(assert_all_called=True) as mock:
            route = mock.delete(f"{ADMIN}/config/plugin").respond(200)

            async with make_client() as client:
                await client.config.delete_plugin({"code": "limit", "uid": "7", "spec": {}})

        assert dict(route.calls.last.request.url.params) == {"code": "limit", "uid": "7"}

    @pytest.mark.asyncio
    async def test_plugin_listings(self):
        records = [
            {"code": "limit", "uid": "1", "spec": {}},
            {"code": "limit", "name": "per-ip", "spec": None},
        ]

        with respx.mock(assert_all_called=True) as mock:
            mock.get(f"{ADMIN}/config/plugins/limit").respond(200, json=records)
            mock.get(f"{ADMIN}/config/plugin-all").respond(200, json=records[:1])

            async with make_client() as client:
                by_code = await client.config.get_plugins_by_code("limit")
                everything = await client.config.get_all_plugins()

        assert [p.id for p in by_code] == [
            AnonPluginId(code="limit", uid=1),
            NamedPluginId(code="limit", name="per-ip"),
        ]
        assert len(everything) == 1


@pytest.mark.asyncio
async def test_plugin_catalog():
    with respx.mock(assert_all_called=True) as mock:
        mock.get(f"{ADMIN}/plugin/list").respond(200, json=["cors", "limit"])
        mock.get(f"{ADMIN}/plugin/attr-all").respond(
            200, json=[{"code": "cors", "mono": True, "meta": {"version": "1.0"}}]
        )
        mock.get(f"{ADMIN}/plugin/attr/limit").respond(200, json={"code": "limit"})
        mock.get(f"{ADMIN}/plugin/schema/limit").respond(200, json={"type": "object"})

        async with make_client() as client:
            assert await client.config.plugin_list() == ["cors", "limit"]
            attrs = await client.config.plugin_attr_all()
            single = await client.config.plugin_attr("limit")
            schema = await client.config.plugin_schema("limit")

    assert attrs[0].mono is True
    assert attrs[0].meta.version == "1.0"
    assert single.mono is False
    assert schema == {"type": "object"}


@pytest.mark.asyncio
async def test_login_returns_jwt_cookie():
    with respx.mock(assert_all_called=True) as mock:
        login = mock.post(f"{ADMIN}/auth/login").respond(
            200, headers={"Set-Cookie": "jwt=tok.en; Path=/; HttpOnly"}
        )
        mock.get(f"{ADMIN}/config/names").respond(200, json=[])

        async with make_client(access_key="admin", secret_key="s3cret") as client:
            token = await client.login()
            await client.config.get_config_names()

    assert token == "tok.en"
    assert sent_json(login) == {"ak": "admin", "sk": "s3cret"}


@pytest.mark.asyncio
async def test_login_without_credentials_is_skipped():
    async with make_client() as client:
        assert await client.login() is None


@pytest.mark.asyncio
async def test_discovery():
    with respx.mock(assert_all_called=True) as mock:
        mock.get(f"{ADMIN}/discovery/instance/health").respond(200, json={"i-1": True, "i-2": False})
        mock.get(f"{ADMIN}/discovery/instance/list").respond(200, json=["i-1", "i-2"])
        reload_global = mock.get(f"{ADMIN}/discovery/instance/reload/global").respond(200)
        reload_gateway = mock.get(f"{ADMIN}/discovery/instance/reload/gateway").respond(200)
        reload_route = mock.get(f"{ADMIN}/discovery/instance/reload/route").respond(200)
        mock.get(f"{ADMIN}/discovery/backends/").respond(200, json=[{"host": "10.0.0.1"}])

        async with make_client() as client:
            assert await client.discovery.instance_health() == {"i-1": True, "i-2": False}
            assert await client.discovery.instance_list() == ["i-1", "i-2"]
            await client.discovery.reload_global("i-1")
            await client.discovery.reload_gateway("i-1", "gw")
            await client.discovery.reload_route("i-1", "gw", "api")
            assert await client.discovery.backends() == [{"host": "10.0.0.1"}]

    assert dict(reload_global.calls.last.request.url.params) == {"instance": "i-1"}
    assert dict(reload_gateway.calls.last.request.url.params) == {"instance": "i-1", "gateway": "gw"}
    assert dict(reload_route.calls.last.request.url.params) == {
        "instance": "i-1",
        "gateway": "gw",
        "route": "api",
    }


@pytest.mark.asyncio
async def test_client_metrics_snapshot():
    with respx.mock(assert_all_called=True) as mock:
        mock.get(f"{ADMIN}/config/names").respond(200, json=[], headers={"X-Server-Version": "2"})
        mock.put(f"{ADMIN}/config").respond(409)

        async with make_client() as client:
            await client.config.get_config_names()
            with pytest.raises(VersionConflict):
                await client.config.put_config(Config())
            snapshot = client.metrics()

    assert snapshot["requests_total"] == {"GET": {"200": 1}, "PUT": {"409": 1}}
    assert snapshot["version_adoptions_total"] == 1
    assert snapshot["version_conflicts_total"] == 1
