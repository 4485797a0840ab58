"""Unit tests for SessionRegistry operations."""

import asyncio

import pytest

from vibest_agent.errors import EngineStartError, NotFoundError
from vibest_agent.models import PermissionAllow, SessionState
from vibest_agent.registry import SessionRegistry

from fakes import FailingEngine, FakeEngine, assistant_message, result_message


class TestSessionLifecycle:
    """Test create, lookup and abort."""

    @pytest.mark.anyio
    async def test_create_session(self, registry: SessionRegistry) -> None:
        """Creating a session stores a started, active session."""
        session_id = await registry.create()

        assert session_id.startswith("sess_")
        assert session_id in registry
        session = registry.get(session_id)
        assert session.state == SessionState.ACTIVE
        assert session.engine.started is True

    @pytest.mark.anyio
    async def test_session_ids_are_unique(self, registry: SessionRegistry) -> None:
        ids = {await registry.create() for _ in range(5)}
        assert len(ids) == 5
        assert len(registry) == 5

    @pytest.mark.anyio
    async def test_sessions_get_their_own_engine(self, registry: SessionRegistry) -> None:
        first = registry.get(await registry.create())
        second = registry.get(await registry.create())
        assert first.engine is not second.engine

    @pytest.mark.anyio
    async def test_failed_start_stores_nothing(self) -> None:
        """An engine that fails to start leaves the registry untouched."""
        registry = SessionRegistry(FailingEngine)

        with pytest.raises(EngineStartError):
            await registry.create()
        assert len(registry) == 0

    def test_get_nonexistent_session(self, registry: SessionRegistry) -> None:
        """Getting an unknown session raises NotFoundError."""
        with pytest.raises(NotFoundError):
            registry.get("sess_missing")

    @pytest.mark.anyio
    async def test_list_sessions(self, registry: SessionRegistry) -> None:
        first = await registry.create()
        second = await registry.create()

        assert [session.id for session in registry.list()] == [first, second]

    @pytest.mark.anyio
    async def test_abort_removes_session(self, registry: SessionRegistry) -> None:
        """Aborting removes the session and stops its engine."""
        session_id = await registry.create()
        session = registry.get(session_id)

        await registry.abort(session_id)

        assert session_id not in registry
        assert session.state == SessionState.ABORTED
        assert session.engine.closed is True

    @pytest.mark.anyio
    async def test_second_abort_raises_not_found(self, registry: SessionRegistry) -> None:
        session_id = await registry.create()
        await registry.abort(session_id)

        with pytest.raises(NotFoundError):
            await registry.abort(session_id)

    @pytest.mark.anyio
    async def test_abort_all(self, registry: SessionRegistry) -> None:
        sessions = [registry.get(await registry.create()) for _ in range(3)]

        assert await registry.abort_all() == 3
        assert len(registry) == 0
        assert all(session.state == SessionState.ABORTED for session in sessions)

    @pytest.mark.anyio
    async def test_registries_are_independent(self) -> None:
        """Sessions created in one registry are invisible to another."""
        first = SessionRegistry(FakeEngine)
        second = SessionRegistry(FakeEngine)
        session_id = await first.create()

        assert session_id not in second
        with pytest.raises(NotFoundError):
            second.get(session_id)


class TestSessionOperations:
    """Test operations routed to a session by id."""

    @pytest.mark.anyio
    async def test_prompt_unknown_session_fails_eagerly(self, registry: SessionRegistry) -> None:
        """The lookup happens before iteration starts."""
        with pytest.raises(NotFoundError):
            registry.prompt("sess_missing", {"role": "user", "content": []})

    @pytest.mark.anyio
    async def test_prompt_streams_turn(self, registry: SessionRegistry) -> None:
        session_id = await registry.create()
        engine = registry.get(session_id).engine
        engine.emit(assistant_message("working"), result_message())

        items = [
            item
            async for item in registry.prompt(
                session_id, {"role": "user", "content": []}, model="sonnet"
            )
        ]

        assert [item["type"] for item in items] == ["assistant", "result"]
        assert engine.models == ["sonnet"]

    @pytest.mark.anyio
    async def test_interrupt(self, registry: SessionRegistry) -> None:
        """Interrupt reaches the engine and leaves the session live."""
        session_id = await registry.create()

        await registry.interrupt(session_id)

        session = registry.get(session_id)
        assert session.engine.interrupts == 1
        assert session.state == SessionState.ACTIVE

    @pytest.mark.anyio
    async def test_set_model(self, registry: SessionRegistry) -> None:
        session_id = await registry.create()
        await registry.set_model(session_id, "opus")
        assert registry.get(session_id).engine.models == ["opus"]

    @pytest.mark.anyio
    async def test_metadata_queries(self, registry: SessionRegistry) -> None:
        session_id = await registry.create()

        commands = await registry.supported_commands(session_id)
        models = await registry.supported_models(session_id)
        servers = await registry.mcp_servers(session_id)

        assert [command["name"] for command in commands] == ["review", "compact"]
        assert [model["value"] for model in models] == ["sonnet", "opus"]
        assert servers[0]["status"] == "connected"

    @pytest.mark.anyio
    async def test_respond_permission(self, registry: SessionRegistry) -> None:
        session_id = await registry.create()
        engine = registry.get(session_id).engine
        call = engine.ask("Glob", {"pattern": "**/*.py"})
        queue = registry.permission_requests(session_id)
        request = await asyncio.wait_for(queue.__anext__(), timeout=1)

        assert registry.respond_permission(session_id, request.request_id, PermissionAllow()) is True
        assert (await call).behavior == "allow"

    @pytest.mark.anyio
    async def test_respond_permission_unknown_session(self, registry: SessionRegistry) -> None:
        with pytest.raises(NotFoundError):
            registry.respond_permission("sess_missing", "perm_x", PermissionAllow())

    @pytest.mark.anyio
    async def test_abort_denies_pending_permission(self, registry: SessionRegistry) -> None:
        """Abort answers outstanding requests so the engine is not left waiting."""
        session_id = await registry.create()
        call = registry.get(session_id).engine.ask("Bash", {"command": "make"})
        await asyncio.wait_for(registry.permission_requests(session_id).__anext__(), timeout=1)

        await registry.abort(session_id)

        decision = await asyncio.wait_for(call, timeout=1)
        assert decision.behavior == "deny"
        assert decision.interrupt is True
