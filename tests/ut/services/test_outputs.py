"""资源输出解析测试"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from sitedeploy.core.exceptions import ConfigError, DependencyUnresolvedError
from sitedeploy.services.outputs import (
    StaticOutputResolver,
    YamlOutputResolver,
    parse_output_overrides,
)
from sitedeploy.utils.yaml_io import save_yaml


class TestParseOverrides:
    def test_pairs(self) -> None:
        result = parse_output_overrides([
            "deploy-storage.blobEndpoint=https://a.blob/",
            "deploy-afd.endpointUrl = https://b.net",
        ])
        assert result == {
            "deploy-storage": {"blobEndpoint": "https://a.blob/"},
            "deploy-afd": {"endpointUrl": "https://b.net"},
        }

    def test_value_may_contain_equals(self) -> None:
        result = parse_output_overrides(["r.k=a=b"])
        assert result == {"r": {"k": "a=b"}}

    @pytest.mark.parametrize("entry", ["novalue", "nodot=1", ".k=1", "res.=1", "res.key"])
    def test_malformed_rejected(self, entry: str) -> None:
        with pytest.raises(ConfigError, match="resource.key=value"):
            parse_output_overrides(["r.k=ok", entry])


class TestStaticOutputResolver:
    @pytest.mark.asyncio
    async def test_resolve(self) -> None:
        resolver = StaticOutputResolver({"res": {"key": "v"}})
        assert await resolver.get_output("res", "key") == "v"

    @pytest.mark.asyncio
    async def test_missing_resource(self) -> None:
        with pytest.raises(DependencyUnresolvedError) as exc:
            await StaticOutputResolver().get_output("res", "key")
        assert exc.value.resource == "res"

    @pytest.mark.asyncio
    async def test_missing_key(self) -> None:
        resolver = StaticOutputResolver({"res": {}})
        with pytest.raises(DependencyUnresolvedError, match="key"):
            await resolver.get_output("res", "key")

    @pytest.mark.asyncio
    async def test_empty_value_returned_as_empty(self) -> None:
        resolver = StaticOutputResolver({"res": {"key": None}})
        assert await resolver.get_output("res", "key") == ""


class TestYamlOutputResolver:
    @pytest.mark.asyncio
    async def test_resolve_existing(self, tmp_path: Path) -> None:
        f = tmp_path / "outputs.yml"
        save_yaml(f, {"deploy-afd": {"endpointUrl": "https://x.net"}})
        resolver = YamlOutputResolver(str(f), timeout=1)
        assert await resolver.get_output("deploy-afd", "endpointUrl") == "https://x.net"

    @pytest.mark.asyncio
    async def test_waits_for_resource(self, tmp_path: Path) -> None:
        f = tmp_path / "outputs.yml"
        resolver = YamlOutputResolver(str(f), timeout=5, poll_interval=0.05)

        async def provision() -> None:
            await asyncio.sleep(0.2)
            save_yaml(f, {"deploy-storage": {"blobEndpoint": "https://s.blob/"}})

        writer = asyncio.create_task(provision())
        value = await resolver.get_output("deploy-storage", "blobEndpoint")
        await writer
        assert value == "https://s.blob/"

    @pytest.mark.asyncio
    async def test_timeout(self, tmp_path: Path) -> None:
        resolver = YamlOutputResolver(str(tmp_path / "outputs.yml"), timeout=0.1, poll_interval=0.02)
        with pytest.raises(DependencyUnresolvedError, match="超时"):
            await resolver.get_output("deploy-storage", "blobEndpoint")

    @pytest.mark.asyncio
    async def test_missing_key_fails_immediately(self, tmp_path: Path) -> None:
        f = tmp_path / "outputs.yml"
        save_yaml(f, {"deploy-storage": {"name": "acct"}})
        resolver = YamlOutputResolver(str(f), timeout=60, poll_interval=30)
        with pytest.raises(DependencyUnresolvedError) as exc:
            await asyncio.wait_for(resolver.get_output("deploy-storage", "blobEndpoint"), 2)
        assert exc.value.key == "blobEndpoint"

    @pytest.mark.asyncio
    async def test_override_wins(self, tmp_path: Path) -> None:
        f = tmp_path / "outputs.yml"
        save_yaml(f, {"deploy-afd": {"endpointUrl": "https://file.net"}})
        resolver = YamlOutputResolver(
            str(f), overrides={"deploy-afd": {"endpointUrl": "https://cli.net"}},
        )
        assert await resolver.get_output("deploy-afd", "endpointUrl") == "https://cli.net"

    @pytest.mark.asyncio
    async def test_cancel_while_waiting(self, tmp_path: Path) -> None:
        resolver = YamlOutputResolver(str(tmp_path / "outputs.yml"), timeout=60, poll_interval=0.05)
        task = asyncio.create_task(resolver.get_output("r", "k"))
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
