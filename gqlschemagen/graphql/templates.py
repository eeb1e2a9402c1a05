"""
Template engine wrapper for schema rendering.

Provides a small interface over Jinja2 with the built-in GraphQL block
templates and filters used by the emitter.
"""

from typing import Dict, Any

from jinja2 import Environment, DictLoader


class TemplateError(Exception):
    """Exception raised for template-related errors."""

    pass


class TemplateEngine:
    """Wrapper for Jinja2 template engine with schema rendering utilities."""

    def __init__(self, indent_size: int = 2):
        """
        Initialize template engine.

        Args:
            indent_size: Spaces used to indent fields and enum values
        """
        self.indent_size = indent_size
        self._env = None
        self._setup_environment()

    def _setup_environment(self):
        """Setup Jinja2 environment with schema filters."""
        self._env = Environment(
            loader=DictLoader(dict(BUILTIN_TEMPLATES)),
            autoescape=False,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )

        self._env.filters["block_string"] = self._block_string_filter
        self._env.filters["string_literal"] = self._string_literal_filter
        self._env.globals["pad"] = " " * self.indent_size

    def render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        """
        Render a template with the given context.

        Args:
            template_name: Name of the template
            context: Variables to pass to template

        Returns:
            Rendered content without surrounding blank lines
        """
        try:
            template = self._env.get_template(template_name)
            return template.render(**context).strip("\n")
        except Exception as e:
            raise TemplateError(f"Failed to render template {template_name}: {e}")

    # Template filters

    @staticmethod
    def _block_string_filter(value: str, indent: str = "") -> str:
        """Render a description as a GraphQL block string."""
        text = str(value).replace('"""', '\\"""')
        lines = text.split("\n")
        if len(lines) == 1:
            return f'{indent}"""{text}"""'
        body = "\n".join(f"{indent}{line}" if line.strip() else "" for line in lines)
        return f'{indent}"""\n{body}\n{indent}"""'

    @staticmethod
    def _string_literal_filter(value: str) -> str:
        """Quote a value as a GraphQL string literal."""
        escaped = str(value).replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
        return f'"{escaped}"'


OBJECT_TEMPLATE = """
{%- if description %}
{{ description | block_string }}
{%- endif %}
{{ keyword }} {{ name }}{% if model_path %} @goModel(model: {{ model_path | string_literal }}){% endif %} {
{%- for field in fields %}
{%- if field.description %}
{{ field.description | block_string(pad) }}
{%- endif %}
{{ pad }}{{ field.name }}: {{ field.type }}{% for directive in field.directives %} {{ directive }}{% endfor %}
{%- endfor %}
}
"""

ENUM_TEMPLATE = """
{%- if description %}
{{ description | block_string }}
{%- endif %}
enum {{ name }}{% if model_path %} @goModel(model: {{ model_path | string_literal }}){% endif %} {
{%- for value in values %}
{%- if value.description %}
{{ value.description | block_string(pad) }}
{%- endif %}
{{ pad }}{{ value.name }}{% for directive in value.directives %} {{ directive }}{% endfor %}
{%- endfor %}
}
"""

SCALARS_TEMPLATE = """
{%- for scalar in scalars %}
scalar {{ scalar }}
{%- endfor %}
"""

BUILTIN_TEMPLATES = {
    "object.graphqls": OBJECT_TEMPLATE,
    "enum.graphqls": ENUM_TEMPLATE,
    "scalars.graphqls": SCALARS_TEMPLATE,
}
