"""
Schema emitter.

Groups resolved artifacts into output files according to the configured
strategy and renders each file body with the block templates.
"""

import os
from typing import Dict, List, Optional

from ..core.config import GeneratorConfig
from ..core.generator import GeneratorError, format_code
from ..core.naming import namespace_path
from ..core.schema import Artifact, ArtifactKind, OutputArtifact, ResolvedField, ResolvedSchema
from ..logging_config import get_logger
from .templates import TemplateEngine, TemplateError

logger = get_logger(__name__)

SCALARS_FILE_STEM = "scalars"


class EmitError(GeneratorError):
    """Raised when artifacts cannot be grouped into files."""

    pass


def deprecation_directive(deprecated: bool, reason: str) -> str:
    if not deprecated:
        return ""
    if reason:
        escaped = reason.replace("\\", "\\\\").replace('"', '\\"')
        return f'@deprecated(reason: "{escaped}")'
    return "@deprecated"


class SchemaEmitter:
    """Turns a ResolvedSchema into OutputArtifacts and rendered text."""

    def __init__(self, config: GeneratorConfig, engine: Optional[TemplateEngine] = None):
        self.config = config
        self.naming = config.naming_config()
        self.engine = engine or TemplateEngine(indent_size=config.indent_size)

    # Grouping

    def single_file_path(self) -> str:
        output = self.config.output
        if os.path.splitext(output)[1]:
            return output
        return os.path.join(output, self.config.output_file_name)

    def path_for(self, artifact: Artifact) -> str:
        """
        Output path of an artifact under the configured strategy.

        Raises:
            EmitError: For namespaces that escape the output directory
        """
        strategy = self.config.strategy
        if strategy == "single":
            return self.single_file_path()

        ext = self.config.extension
        try:
            relative = namespace_path(artifact.namespace, self.naming.namespace_separator)
        except ValueError as e:
            raise EmitError(f"{artifact.source}: {e}")

        if relative:
            filename = relative + ext
        elif strategy == "package":
            filename = (artifact.package or "schema") + ext
        else:
            model = artifact.model_name or artifact.name
            filename = (
                self.config.schema_file_name
                .replace("{model_name}", model.lower())
                .replace("{type_name}", artifact.go_name)
            )
        return os.path.join(self.config.output, filename)

    def group(self, schema: ResolvedSchema) -> List[OutputArtifact]:
        """
        Group artifacts into files.

        Returns:
            OutputArtifacts sorted by path, each with artifacts ordered by
            namespace then declaration order
        """
        files: Dict[str, OutputArtifact] = {}
        for artifact in schema.artifacts:
            path = self.path_for(artifact)
            files.setdefault(path, OutputArtifact(path=path)).artifacts.append(artifact)

        for output in files.values():
            output.artifacts.sort(key=lambda a: (a.namespace, a.order))

        if schema.scalars:
            if self.config.strategy == "single":
                path = self.single_file_path()
            else:
                path = os.path.join(self.config.output, SCALARS_FILE_STEM + self.config.extension)
            files.setdefault(path, OutputArtifact(path=path)).scalars = list(schema.scalars)

        logger.debug("Grouped %d artifact(s) into %d file(s)", len(schema.artifacts), len(files))
        return [files[path] for path in sorted(files)]

    # Rendering

    def _field_directives(self, field: ResolvedField, artifact: Artifact) -> List[str]:
        directives = []
        deprecated = deprecation_directive(field.deprecated, field.deprecation_reason)
        if deprecated:
            directives.append(deprecated)
        if (
            self.config.use_gqlgen_directives
            and field.force_resolver
            and artifact.kind == ArtifactKind.TYPE
        ):
            directives.append("@goField(forceResolver: true)")
        return directives

    def render_artifact(self, artifact: Artifact) -> str:
        """Render one type, input or enum block."""
        if artifact.kind == ArtifactKind.ENUM:
            values = [
                {
                    "name": value.name,
                    "description": value.description,
                    "directives": [
                        d for d in [deprecation_directive(value.deprecated, value.deprecation_reason)] if d
                    ],
                }
                for value in artifact.values
            ]
            return self.engine.render_template("enum.graphqls", {
                "name": artifact.name,
                "description": artifact.description,
                "model_path": artifact.model_path,
                "values": values,
            })

        fields = [
            {
                "name": field.name,
                "type": field.graphql_type,
                "description": field.description,
                "directives": self._field_directives(field, artifact),
            }
            for field in artifact.fields
        ]
        return self.engine.render_template("object.graphqls", {
            "keyword": "input" if artifact.is_input else "type",
            "name": artifact.name,
            "description": artifact.description,
            "model_path": artifact.model_path,
            "fields": fields,
        })

    def render_body(self, output: OutputArtifact) -> str:
        """
        Render the generated part of a file: scalars, then blocks.

        Raises:
            TemplateError: If a template fails to render
        """
        blocks = []
        if output.scalars:
            blocks.append(self.engine.render_template("scalars.graphqls", {"scalars": output.scalars}))
        for artifact in output.artifacts:
            blocks.append(self.render_artifact(artifact))
        return format_code("\n\n".join(blocks))


def emit_files(schema: ResolvedSchema, config: GeneratorConfig) -> Dict[str, str]:
    """Render every output file body keyed by path."""
    emitter = SchemaEmitter(config)
    try:
        return {output.path: emitter.render_body(output) for output in emitter.group(schema)}
    except TemplateError as e:
        raise EmitError(str(e))
