"""Integration tests for connect_servers()."""

from __future__ import annotations

import pytest

from mcp_stdio_client import (
    ConfigError,
    McpClient,
    ServerConfig,
    ServerStartupError,
    SessionState,
    SpawnError,
    close_servers,
    connect_servers,
)

pytestmark = pytest.mark.integration


class TestConnectServers:
    """Parallel initialization of named servers."""

    @pytest.mark.asyncio
    async def test_all_servers_ready(self, fake_server) -> None:
        clients = await connect_servers(
            {
                "one": fake_server(),
                "two": ServerConfig(**fake_server("--quiet")),
            }
        )
        try:
            assert set(clients) == {"one", "two"}
            assert all(c.state == SessionState.READY for c in clients.values())
            assert clients["one"].name == "one"

            tools = await clients["two"].list_tools()
            assert [t["name"] for t in tools] == ["a", "b"]
        finally:
            await close_servers(clients)

        assert all(c.state == SessionState.CLOSED for c in clients.values())

    @pytest.mark.asyncio
    async def test_empty_mapping(self) -> None:
        assert await connect_servers({}) == {}

    @pytest.mark.asyncio
    async def test_partial_failure_reports_and_tears_down(self, fake_server, monkeypatch) -> None:
        created: dict[str, McpClient] = {}
        original = McpClient.from_config.__func__

        def tracking_from_config(cls, config, name=None):
            client = original(cls, config, name=name)
            created[name] = client
            return client

        monkeypatch.setattr(McpClient, "from_config", classmethod(tracking_from_config))

        with pytest.raises(ServerStartupError) as exc_info:
            await connect_servers(
                {
                    "good": fake_server(),
                    "missing": {"command": "definitely-not-a-real-mcp-server-binary"},
                }
            )

        failures = exc_info.value.failures
        assert set(failures) == {"missing"}
        assert isinstance(failures["missing"], SpawnError)
        assert "missing" in str(exc_info.value)

        # The server that did start is closed rather than left running
        good = created["good"]
        assert good.state == SessionState.CLOSED
        assert not good._transport.is_running

    @pytest.mark.asyncio
    async def test_every_failure_is_reported(self, fake_server) -> None:
        with pytest.raises(ServerStartupError) as exc_info:
            await connect_servers(
                {
                    "missing": {"command": "definitely-not-a-real-mcp-server-binary"},
                    "exits": fake_server("--exit-on-start"),
                    "rejects": fake_server("--init-error"),
                }
            )

        assert set(exc_info.value.failures) == {"missing", "exits", "rejects"}

    @pytest.mark.asyncio
    async def test_invalid_config(self) -> None:
        with pytest.raises(ConfigError, match="broken"):
            await connect_servers({"broken": {"args": ["no command"]}})
