"""Tool definition schemas advertised to the LLM."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ToolParameter(BaseModel):
    """JSON-schema description of one tool argument."""

    model_config = ConfigDict(frozen=True)

    type: Literal["string", "integer", "number", "boolean", "array"]
    description: str
    enum: list[str] | None = None
    items: dict | None = None

    def to_schema(self) -> dict:
        schema: dict = {"type": self.type, "description": self.description}
        if self.enum:
            schema["enum"] = list(self.enum)
        if self.items:
            schema["items"] = dict(self.items)
        return schema


class ToolDefinition(BaseModel):
    """A tool the model may call."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: dict[str, ToolParameter] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _required_subset(self) -> "ToolDefinition":
        missing = [name for name in self.required if name not in self.parameters]
        if missing:
            raise ValueError(f"Tool '{self.name}' requires undeclared parameters: {missing}")
        return self

    def input_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {name: param.to_schema() for name, param in self.parameters.items()},
            "required": list(self.required),
        }

    def to_anthropic(self) -> dict:
        """Anthropic Messages API tool format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema(),
        }

    def to_openai(self) -> dict:
        """OpenAI chat completions function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema(),
            },
        }
