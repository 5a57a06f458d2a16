"""Tool catalog - a registry of small generated Python tools."""

import asyncio
import json
import logging
import re
import sys
import threading
from collections import Counter
from pathlib import Path
from typing import Any

from autodidact.errors import InvalidStateError, NotFoundError, StorageError
from autodidact.jsonio import atomic_write_json, atomic_write_text, read_json
from autodidact.tools.models import ParamSpec, ToolNeed, ToolResult, ToolSpec, ToolType

logger = logging.getLogger(__name__)

# Topics seen this many times become tool candidates.
REPEAT_THRESHOLD = 3

STUB_TEMPLATE = '''#!/usr/bin/env python3
"""{description}

Generated by autodidact ({type} tool).
"""

import json
import sys

PARAMETERS = {parameters!r}


def {name}(**params):
    # {hint}
    return {{"success": True, "tool": "{name}", "params": params}}


if __name__ == "__main__":
    params = json.loads(sys.argv[1]) if len(sys.argv) > 1 else {{}}
    missing = [p["name"] for p in PARAMETERS if p["required"] and p["name"] not in params]
    if missing:
        print(json.dumps({{"success": False, "error": "missing parameters: " + ", ".join(missing)}}))
        sys.exit(1)
    print(json.dumps({name}(**params)))
'''

TYPE_HINTS = {
    ToolType.API: "Fill in the API endpoint and request here.",
    ToolType.PYTHON: "Implement the tool logic here.",
    ToolType.SHELL: "Wrap the shell command here with subprocess.run.",
}


def sanitize_name(text: str) -> str:
    """Lowercase snake_case identifier derived from free text."""
    name = re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")
    if not name:
        return "tool"
    if name[0].isdigit():
        name = f"tool_{name}"
    return name[:64].rstrip("_")


class ToolCatalog:
    """Registry in ``registry.json`` plus generated stubs in ``generated/``."""

    def __init__(self, storage_dir: Path, timeout: float = 30.0):
        self.storage_dir = Path(storage_dir)
        self.generated_dir = self.storage_dir / "generated"
        self.generated_dir.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout
        self._registry_path = self.storage_dir / "registry.json"
        self._lock = threading.RLock()

    def _load(self) -> dict[str, ToolSpec]:
        data = read_json(self._registry_path, default={})
        tools = {}
        for name, raw in (data or {}).items():
            try:
                tools[name] = ToolSpec.from_dict(raw)
            except (KeyError, ValueError, TypeError):
                logger.warning("Skipping unreadable tool entry %s", name)
        return tools

    def _save(self, tools: dict[str, ToolSpec]) -> None:
        atomic_write_json(self._registry_path, {name: t.to_dict() for name, t in tools.items()})

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def analyze_need(self, description: str) -> ToolSpec:
        """Heuristic proposal for a tool that covers ``description``."""
        lower = description.lower()
        if "api" in lower:
            tool_type = ToolType.API
        elif "python" in lower:
            tool_type = ToolType.PYTHON
        else:
            tool_type = ToolType.SHELL
        return ToolSpec(name=sanitize_name(description), type=tool_type, description=description)

    def create_tool(self, spec: ToolSpec) -> ToolSpec:
        """Write the stub and register it, replacing any tool with the same name."""
        if not re.fullmatch(r"[a-z_][a-z0-9_]*", spec.name):
            raise InvalidStateError(f"Invalid tool name: {spec.name!r}")

        path = self.generated_dir / f"{spec.name}.py"
        atomic_write_text(path, STUB_TEMPLATE.format(
            name=spec.name,
            type=spec.type.value,
            description=spec.description.replace('"""', "'''"),
            parameters=[p.to_dict() for p in spec.parameters],
            hint=TYPE_HINTS[spec.type],
        ))
        spec.file = str(path)

        with self._lock:
            tools = self._load()
            tools[spec.name] = spec
            self._save(tools)

        logger.info("Created tool %s (%s)", spec.name, spec.type.value)
        return spec

    def create_from_need(self, description: str, parameters: list[ParamSpec] | None = None) -> ToolSpec:
        spec = self.analyze_need(description)
        spec.parameters = list(parameters or [])
        return self.create_tool(spec)

    # ------------------------------------------------------------------
    # Use
    # ------------------------------------------------------------------

    async def invoke(self, name: str, params: dict[str, Any] | None = None) -> ToolResult:
        """Run a tool's stub with the current interpreter."""
        spec = self.get(name)
        if spec is None:
            raise NotFoundError(f"Tool not found: {name}")

        process = await asyncio.create_subprocess_exec(
            sys.executable,
            spec.file,
            json.dumps(params or {}),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        self._increment_usage(name)

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            return ToolResult(success=False, error=f"Tool timed out after {self.timeout}s")

        text = stdout.decode("utf-8", errors="replace").strip()
        try:
            output = json.loads(text) if text else None
        except json.JSONDecodeError:
            output = text

        if process.returncode != 0:
            error = stderr.decode("utf-8", errors="replace").strip()
            if isinstance(output, dict) and output.get("error"):
                error = output["error"]
            return ToolResult(success=False, output=output, error=error or f"exit code {process.returncode}")
        return ToolResult(success=True, output=output)

    def _increment_usage(self, name: str) -> None:
        with self._lock:
            tools = self._load()
            if name in tools:
                tools[name].usage_count += 1
                self._save(tools)

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def get(self, name: str) -> ToolSpec | None:
        with self._lock:
            return self._load().get(name)

    def list_tools(self) -> list[ToolSpec]:
        with self._lock:
            return list(self._load().values())

    def delete_tool(self, name: str) -> ToolSpec:
        with self._lock:
            tools = self._load()
            spec = tools.pop(name, None)
            if spec is None:
                raise NotFoundError(f"Tool not found: {name}")
            self._save(tools)

        if spec.file:
            try:
                Path(spec.file).unlink(missing_ok=True)
            except OSError as e:
                raise StorageError(f"Failed to delete {spec.file}: {e}") from e
        logger.info("Deleted tool %s", name)
        return spec

    def discover_needs(self, topics: list[str]) -> list[ToolNeed]:
        """Topics repeated at least three times are worth automating."""
        counts = Counter(t.strip().lower() for t in topics if t and t.strip())
        return [
            ToolNeed(description=f"Automate: {topic}", context=f"Seen {count} times", priority="high")
            for topic, count in counts.items()
            if count >= REPEAT_THRESHOLD
        ]
