"""Base renderer protocol and types."""

from enum import Enum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class OutputFormat(str, Enum):
    """Supported output formats."""

    JSON = "json"
    TERMINAL = "terminal"


class RenderContext(BaseModel):
    """Context for rendering operations."""

    model_config = {"frozen": True}

    format: OutputFormat = Field(default=OutputFormat.TERMINAL, description="Output format")
    output_path: Path | None = Field(default=None, description="Output file path")
    verbose: bool = Field(default=False, description="Show passing results and logs")
    color: bool = Field(default=True, description="Enable color output (terminal only)")
    indent: int = Field(default=2, description="JSON indentation")


@runtime_checkable
class Renderer(Protocol):
    """Protocol for output renderers.

    Example:
        class CsvRenderer:
            @property
            def format(self) -> OutputFormat:
                return OutputFormat.JSON

            def render(self, data: Any, context: RenderContext) -> str:
                ...

            def render_to_file(self, data: Any, context: RenderContext) -> None:
                context.output_path.write_text(self.render(data, context))
    """

    @property
    def format(self) -> OutputFormat:
        """The output format this renderer produces."""
        ...

    def render(self, data: Any, context: RenderContext) -> str:
        """Render data (typically a RunAllResult) to a string."""
        ...

    def render_to_file(self, data: Any, context: RenderContext) -> None:
        """Render data directly to ``context.output_path``."""
        ...


class BaseRenderer:
    """Base implementation providing ``render_to_file``."""

    def render_to_file(self, data: Any, context: RenderContext) -> None:
        """Render data directly to a file.

        Raises:
            ValueError: If context.output_path is not set
        """
        if context.output_path is None:
            raise ValueError("output_path must be set in context for file rendering")

        content = self.render(data, context)
        context.output_path.write_text(content, encoding="utf-8")

    def render(self, data: Any, context: RenderContext) -> str:
        """Render data to a string. Must be implemented by subclasses."""
        raise NotImplementedError
