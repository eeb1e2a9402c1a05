"""
gqlschemagen

Generates GraphQL schema files for gqlgen from annotated Go structs.
"""

from .core.config import GeneratorConfig, ConfigError, ConfigManager, load_config
from .core.generator import GenerationResult, GeneratorError
from .pipeline import SchemaPipeline, generate_schema

# Version info
__version__ = "0.1.0"

__all__ = [
    "GeneratorConfig",
    "ConfigError",
    "ConfigManager",
    "GenerationResult",
    "GeneratorError",
    "SchemaPipeline",
    "generate_schema",
    "load_config",
]
