"""
Unit tests for the tool registry: argument binding contract and dispatch.
"""

import pytest

from app.agent.registry import ToolParam, ToolRegistry, ToolSpec
from app.core.errors import ToolExecutionError, UnknownFunctionError


async def _search(query, top_k=2):
    return {"context": f"{query}:{top_k}"}


SEARCH = ToolSpec(
    name="retrieveSimilar",
    description="search",
    func=_search,
    params=(ToolParam("query"), ToolParam("topK", 2)),
)


class TestBind:
    def test_named_arguments_bind_by_name_whatever_their_order(self) -> None:
        assert SEARCH.bind({"topK": 5, "query": "leave"}) == ["leave", 5]

    def test_defaults_fill_missing_optional(self) -> None:
        assert SEARCH.bind({"query": "leave"}) == ["leave", 2]

    def test_unknown_keys_apply_positionally_in_written_order(self) -> None:
        assert SEARCH.bind({"param1": "leave", "param2": 4}) == ["leave", 4]

    def test_mixed_named_and_positional(self) -> None:
        assert SEARCH.bind({"k": 9, "query": "leave"}) == ["leave", 9]

    def test_missing_required_raises(self) -> None:
        with pytest.raises(TypeError, match="query"):
            SEARCH.bind({})

    def test_too_many_arguments_raises(self) -> None:
        with pytest.raises(TypeError):
            SEARCH.bind({"a": 1, "b": 2, "c": 3})

    def test_signature(self) -> None:
        assert SEARCH.signature() == "retrieveSimilar(query, topK=2)"


class TestRegistry:
    def make(self) -> ToolRegistry:
        registry = ToolRegistry()
        registry.register(SEARCH)
        return registry

    def test_get_and_require(self) -> None:
        registry = self.make()
        assert registry.get("retrieveSimilar") is SEARCH
        assert registry.get("deleteEverything") is None
        with pytest.raises(UnknownFunctionError) as exc_info:
            registry.require("deleteEverything")
        assert exc_info.value.function == "deleteEverything"

    @pytest.mark.asyncio
    async def test_call_runs_tool_with_bound_arguments(self) -> None:
        assert await self.make().call("retrieveSimilar", {"topK": 1, "query": "x"}) == {"context": "x:1"}

    @pytest.mark.asyncio
    async def test_call_wraps_tool_errors(self) -> None:
        async def broken():
            raise ValueError("bad input")

        registry = self.make()
        registry.register(ToolSpec("broken", "fails", broken))
        with pytest.raises(ToolExecutionError) as exc_info:
            await registry.call("broken", {})
        assert exc_info.value.function == "broken"
        assert isinstance(exc_info.value.cause, ValueError)
        assert "bad input" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_call_wraps_binding_errors(self) -> None:
        with pytest.raises(ToolExecutionError, match="missing required argument"):
            await self.make().call("retrieveSimilar", {})

    def test_describe_and_manifest(self) -> None:
        registry = self.make()
        assert registry.describe() == "- retrieveSimilar(query, topK=2): search"
        manifest = registry.manifest()
        assert manifest[0]["name"] == "retrieveSimilar"
        assert [p["required"] for p in manifest[0]["params"]] == [True, False]
