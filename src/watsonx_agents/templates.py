"""
Prompt templates rendered with Jinja2 and validated with Pydantic.

A PromptTemplate pairs a Jinja2 template with a Pydantic model describing
its variables. Inputs are validated before rendering so that a missing or
empty variable fails loudly instead of producing a broken prompt.

Example:
    >>> class GreetingInput(BaseModel):
    ...     name: str = Field(min_length=1)
    >>> template = PromptTemplate(GreetingInput, "Hello {{ name }}!")
    >>> template.render(name="Thomas")
    'Hello Thomas!'
"""

from typing import Any, Dict, Generic, Optional, Type, TypeVar

from jinja2 import Environment, StrictUndefined, TemplateError as JinjaTemplateError
from pydantic import BaseModel, ValidationError

from watsonx_agents.errors import TemplateError

T = TypeVar("T", bound=BaseModel)

_environment = Environment(
    undefined=StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)


class PromptTemplate(Generic[T]):
    """
    Jinja2 template with a Pydantic schema for its variables.

    Attributes:
        schema: Pydantic model validating the render inputs.
        template: The Jinja2 source text.
        defaults: Values used for variables not passed to render().
    """

    def __init__(
        self,
        schema: Type[T],
        template: str,
        defaults: Optional[Dict[str, Any]] = None,
    ):
        self.schema = schema
        self.template = template
        self.defaults: Dict[str, Any] = dict(defaults or {})
        try:
            self._compiled = _environment.from_string(template)
        except JinjaTemplateError as e:
            raise TemplateError(f"Invalid template: {e}", cause=e) from e

    def validate_input(self, data: Dict[str, Any]) -> T:
        """
        Validate render inputs against the schema.

        Raises:
            TemplateError: If the inputs do not satisfy the schema.
        """
        try:
            return self.schema.model_validate({**self.defaults, **data})
        except ValidationError as e:
            raise TemplateError(
                f"Template input validation failed: {e}",
                cause=e,
                context={"schema": self.schema.__name__},
            ) from e

    def render(self, data: Optional[Dict[str, Any]] = None, **kwargs: Any) -> str:
        """
        Render the template.

        Args:
            data: Template variables.
            **kwargs: Additional variables, overriding those in data.

        Returns:
            The rendered prompt.

        Raises:
            TemplateError: If validation or rendering fails.
        """
        validated = self.validate_input({**(data or {}), **kwargs})
        try:
            return self._compiled.render(**validated.model_dump(by_alias=True))
        except JinjaTemplateError as e:
            raise TemplateError(f"Template rendering failed: {e}", cause=e) from e

    def fork(
        self,
        template: Optional[str] = None,
        defaults: Optional[Dict[str, Any]] = None,
    ) -> "PromptTemplate[T]":
        """Create a new template with the same schema and overridden parts."""
        return PromptTemplate(
            self.schema,
            template if template is not None else self.template,
            {**self.defaults, **(defaults or {})},
        )
