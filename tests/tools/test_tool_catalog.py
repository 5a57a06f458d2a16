"""Tests for the tool catalog."""

import ast
from pathlib import Path

import pytest

from autodidact.errors import InvalidStateError, NotFoundError
from autodidact.tools import ParamSpec, ToolCatalog, ToolSpec, ToolType, sanitize_name


class TestAnalyzeNeed:
    @pytest.mark.parametrize(
        "description,tool_type",
        [
            ("Fetch weather from an API", ToolType.API),
            ("Python script to dedupe notes", ToolType.PYTHON),
            ("Count lines in logs", ToolType.SHELL),
        ],
    )
    def test_type_heuristic(self, temp_dir, description, tool_type):
        assert ToolCatalog(temp_dir).analyze_need(description).type == tool_type

    def test_name_is_sanitized(self, temp_dir):
        assert ToolCatalog(temp_dir).analyze_need("Fetch weather data!").name == "fetch_weather_data"

    @pytest.mark.parametrize(
        "text,name",
        [("  Hello, World  ", "hello_world"), ("123 go", "tool_123_go"), ("!!!", "tool")],
    )
    def test_sanitize_name(self, text, name):
        assert sanitize_name(text) == name


class TestCreateAndDelete:
    def test_create_writes_valid_stub(self, temp_dir):
        catalog = ToolCatalog(temp_dir)
        spec = catalog.create_from_need("fetch weather data", [ParamSpec(name="city")])

        stub = temp_dir / "generated" / "fetch_weather_data.py"
        assert spec.file == str(stub)
        ast.parse(stub.read_text())
        assert catalog.get("fetch_weather_data").parameters[0].name == "city"

    def test_registry_persists(self, temp_dir):
        ToolCatalog(temp_dir).create_from_need("count lines")
        tools = ToolCatalog(temp_dir).list_tools()
        assert [t.name for t in tools] == ["count_lines"]
        assert tools[0].usage_count == 0

    def test_invalid_name(self, temp_dir):
        with pytest.raises(InvalidStateError):
            ToolCatalog(temp_dir).create_tool(ToolSpec(name="Bad Name", type=ToolType.SHELL, description=""))

    def test_delete(self, temp_dir):
        catalog = ToolCatalog(temp_dir)
        spec = catalog.create_from_need("count lines")

        catalog.delete_tool("count_lines")
        assert catalog.get("count_lines") is None
        assert not (temp_dir / "generated" / "count_lines.py").exists()
        assert spec.name == "count_lines"

    def test_delete_unknown(self, temp_dir):
        with pytest.raises(NotFoundError):
            ToolCatalog(temp_dir).delete_tool("nope")


class TestInvoke:
    @pytest.mark.asyncio
    async def test_invoke_runs_stub_and_counts_usage(self, temp_dir):
        catalog = ToolCatalog(temp_dir)
        catalog.create_from_need("echo things", [ParamSpec(name="text")])

        result = await catalog.invoke("echo_things", {"text": "hi"})

        assert result.success is True
        assert result.output == {"success": True, "tool": "echo_things", "params": {"text": "hi"}}
        assert catalog.get("echo_things").usage_count == 1

    @pytest.mark.asyncio
    async def test_missing_required_parameter(self, temp_dir):
        catalog = ToolCatalog(temp_dir)
        catalog.create_from_need("echo things", [ParamSpec(name="text")])

        result = await catalog.invoke("echo_things", {})
        assert result.success is False
        assert "text" in result.error

    @pytest.mark.asyncio
    async def test_timeout_still_counts_usage(self, temp_dir):
        catalog = ToolCatalog(temp_dir, timeout=0.2)
        spec = catalog.create_from_need("wait forever")
        Path(spec.file).write_text("import time\ntime.sleep(30)\n")

        result = await catalog.invoke("wait_forever")

        assert result.success is False
        assert "timed out" in result.error
        assert catalog.get("wait_forever").usage_count == 1

    @pytest.mark.asyncio
    async def test_invoke_unknown(self, temp_dir):
        with pytest.raises(NotFoundError):
            await ToolCatalog(temp_dir).invoke("nope")


def test_discover_needs(temp_dir):
    catalog = ToolCatalog(temp_dir)
    needs = catalog.discover_needs(["Scrape docs", "scrape docs", "SCRAPE DOCS ", "summarize", "summarize"])

    assert [n.description for n in needs] == ["Automate: scrape docs"]
    assert needs[0].priority == "high"
