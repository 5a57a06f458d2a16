"""Tool catalog models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ToolType(str, Enum):
    API = "api"
    PYTHON = "python"
    SHELL = "shell"


@dataclass
class ParamSpec:
    name: str
    type: str = "string"
    required: bool = True
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type, "required": self.required, "description": self.description}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ParamSpec":
        return cls(
            name=data["name"],
            type=data.get("type", "string"),
            required=bool(data.get("required", True)),
            description=data.get("description", ""),
        )


@dataclass
class ToolSpec:
    """A materialized tool. ``usage_count`` grows with each invocation."""

    name: str
    type: ToolType
    description: str
    parameters: list[ParamSpec] = field(default_factory=list)
    usage_count: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    file: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "description": self.description,
            "parameters": [p.to_dict() for p in self.parameters],
            "usage_count": self.usage_count,
            "created_at": self.created_at.isoformat(),
            "file": self.file,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolSpec":
        return cls(
            name=data["name"],
            type=ToolType(data.get("type", ToolType.PYTHON.value)),
            description=data.get("description", ""),
            parameters=[ParamSpec.from_dict(p) for p in data.get("parameters", [])],
            usage_count=int(data.get("usage_count", 0)),
            created_at=datetime.fromisoformat(data["created_at"]),
            file=data.get("file", ""),
        )


@dataclass
class ToolNeed:
    """A candidate tool discovered from repeated work."""

    description: str
    context: str = ""
    priority: str = "medium"


@dataclass
class ToolResult:
    success: bool
    output: Any = None
    error: str | None = None
