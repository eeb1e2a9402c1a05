"""
Schema generation pipeline.

Runs the phases strictly in sequence: scan the Go sources, parse
directives, resolve the schema, then render and write the output files.
"""

import logging
from typing import List

from .core.config import ConfigError, GeneratorConfig, get_config_manager
from .core.directives import annotate_index
from .core.generator import GenerationResult, GeneratorError
from .golang.scanner import scan_paths
from .graphql.emitter import emit_files
from .graphql.writer import SchemaWriter
from .logging_config import ROOT_LOGGER_NAME, get_logger
from .resolver.resolver import resolve_schema

logger = get_logger(__name__)


class _WarningCollector(logging.Handler):
    """Collects warning messages of one run for the result."""

    def __init__(self):
        super().__init__(level=logging.WARNING)
        self.messages: List[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())


class SchemaPipeline:
    """Scan, resolve and emit a GraphQL schema for one configuration."""

    def __init__(self, config: GeneratorConfig):
        self.config = config

    def run(self) -> GenerationResult:
        """
        Execute every phase.

        Returns:
            GenerationResult listing written, unchanged and skipped files

        Raises:
            ConfigError: If the configuration is invalid
            GeneratorError: If any phase fails
        """
        errors = get_config_manager().validate_config(self.config)
        if errors:
            raise ConfigError("; ".join(errors))

        collector = _WarningCollector()
        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.addHandler(collector)
        try:
            index = scan_paths(self.config.packages)
            annotate_index(index)
            schema = resolve_schema(index, self.config)
            files = emit_files(schema, self.config)

            result = GenerationResult(metadata={
                "files_scanned": len(index.files),
                "types_scanned": len(index.types),
                "artifacts": len(schema.artifacts),
                "custom_scalars": len(schema.scalars),
                "strategy": self.config.strategy,
                "output": self.config.output,
            })
            SchemaWriter(self.config).write_all(files, result)
        finally:
            root.removeHandler(collector)

        result.warnings.extend(collector.messages)
        logger.info(
            "Generated %d file(s): %d written, %d unchanged, %d skipped",
            len(result.files), len(result.written), len(result.unchanged), len(result.skipped),
        )
        return result


def generate_schema(config: GeneratorConfig) -> GenerationResult:
    """
    Generate the schema with error handling.

    Args:
        config: Generator configuration

    Returns:
        GenerationResult; failures are reported through ``success`` and
        ``error_message`` instead of being raised
    """
    try:
        return SchemaPipeline(config).run()
    except (GeneratorError, ConfigError) as e:
        return GenerationResult.error(f"Schema generation failed: {e}", exception=e)
