"""JSON renderer for run results."""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from integration_audit.renderers.base import BaseRenderer, OutputFormat, RenderContext


class JSONRenderer(BaseRenderer):
    """Renderer for JSON output.

    Example:
        renderer = JSONRenderer()
        print(renderer.render(run_result, RenderContext(format=OutputFormat.JSON)))
    """

    @property
    def format(self) -> OutputFormat:
        return OutputFormat.JSON

    def render(self, data: Any, context: RenderContext) -> str:
        """Render data to a JSON string.

        Args:
            data: The data to render (typically a pydantic model)
            context: Rendering context with options

        Returns:
            JSON string
        """
        if isinstance(data, BaseModel):
            data = data.model_dump(mode="json")
        elif isinstance(data, (list, tuple)):
            data = [item.model_dump(mode="json") if isinstance(item, BaseModel) else item for item in data]

        return json.dumps(
            data,
            indent=context.indent or None,
            default=self._json_serializer,
            ensure_ascii=False,
        )

    @staticmethod
    def _json_serializer(obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, Path):
            return str(obj)
        if isinstance(obj, set):
            return sorted(obj)
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
