"""
Configuration management for schema generation.

Handles loading and merging configuration from YAML or JSON files,
providing defaults, path resolution and validation for generator settings.
"""

import copy
import json
from pathlib import Path
from typing import Dict, Any, List, Optional, Union
from dataclasses import dataclass, field, fields, asdict

import yaml

from .naming import NamingCase, NamingConfig, parse_name_list


class ConfigError(Exception):
    """Exception raised for configuration-related errors."""
    pass


DEFAULT_CONFIG_FILES = ("gqlschemagen.yml", "gqlschemagen.yaml", "gqlschemagen.json")

VALID_STRATEGIES = {"single", "multiple", "package"}
VALID_PLACEMENTS = {"start", "end"}
VALID_AUTO_STRATEGIES = {"none", "referenced", "all", "patterns"}


@dataclass
class AutoGenerateConfig:
    """Auto-discovery settings."""

    strategy: str = "none"  # none, referenced, all, patterns
    max_depth: int = 0      # 0 means unlimited
    patterns: List[str] = field(default_factory=list)
    exclude_patterns: List[str] = field(default_factory=list)
    unresolved_generic_type: str = ""


@dataclass
class GeneratorConfig:
    """Configuration for schema generation."""

    # Input
    packages: List[str] = field(default_factory=list)

    # Output settings
    output: str = "graph/schema"
    output_file_name: str = "gqlschemagen.graphqls"
    output_file_extension: str = ".graphqls"
    schema_file_name: str = "{model_name}.graphqls"
    strategy: str = "multiple"  # single, multiple, package
    indent_size: int = 2

    # Naming settings
    field_case: str = "camel"  # camel, snake, pascal, original, none
    use_json_tag: bool = True
    strip_prefix: List[str] = field(default_factory=list)
    strip_suffix: List[str] = field(default_factory=list)
    add_type_prefix: str = ""
    add_type_suffix: str = ""
    add_input_prefix: str = ""
    add_input_suffix: str = ""
    namespace_separator: str = "/"

    # gqlgen integration
    use_gqlgen_directives: bool = False
    model_path: str = ""
    known_scalars: List[str] = field(default_factory=list)
    scalars: Dict[str, Any] = field(default_factory=dict)

    # Emission behavior
    include_empty_types: bool = False
    skip_existing: bool = False
    keep_begin_marker: str = "# @gqlKeepBegin"
    keep_end_marker: str = "# @gqlKeepEnd"
    keep_section_placement: str = "end"  # start, end

    auto_generate: AutoGenerateConfig = field(default_factory=AutoGenerateConfig)

    # Unknown keys from config files
    custom: Dict[str, Any] = field(default_factory=dict)

    def naming_config(self) -> NamingConfig:
        """Immutable naming view passed to the resolver and emitter."""
        return NamingConfig(
            field_case=NamingCase.from_value(self.field_case),
            strip_prefixes=parse_name_list(self.strip_prefix),
            strip_suffixes=parse_name_list(self.strip_suffix),
            type_prefix=self.add_type_prefix,
            type_suffix=self.add_type_suffix,
            input_prefix=self.add_input_prefix,
            input_suffix=self.add_input_suffix,
            namespace_separator=self.namespace_separator,
            use_json_tag=self.use_json_tag,
        )

    def scalar_models(self) -> Dict[str, List[str]]:
        """Scalar mappings normalized to GraphQL name -> Go model paths."""
        return normalize_scalars(self.scalars)

    @property
    def extension(self) -> str:
        ext = self.output_file_extension or ".graphqls"
        return ext if ext.startswith(".") else f".{ext}"


def normalize_scalars(scalars: Any) -> Dict[str, List[str]]:
    """
    Accept ``{Name: {model: [...]}}``, ``{Name: [...]}`` or ``{Name: "path"}``.

    Raises:
        ConfigError: If the mapping has another shape
    """
    if not scalars:
        return {}
    if not isinstance(scalars, dict):
        raise ConfigError("scalars must be a mapping of scalar name to Go models")

    result: Dict[str, List[str]] = {}
    for name, value in scalars.items():
        if isinstance(value, dict):
            value = value.get("model", [])
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            raise ConfigError(f"scalar {name}: model must be a string or a list of strings")
        result[str(name)] = [str(model) for model in value]
    return result


class ConfigManager:
    """Manages configuration loading and merging."""

    def __init__(self):
        """Initialize configuration manager."""
        self._defaults: Dict[str, Any] = {}
        self._load_defaults()

    def _load_defaults(self):
        """Load default configuration values."""
        self._defaults = asdict(GeneratorConfig())
        self._defaults.pop("custom")

    def get_config(self, custom_config: Optional[Dict[str, Any]] = None,
                   config_file: Optional[Union[str, Path]] = None) -> GeneratorConfig:
        """
        Get complete configuration.

        Args:
            custom_config: Overrides applied after the file values
            config_file: Path to a YAML or JSON configuration file

        Returns:
            Merged configuration
        """
        base_config = copy.deepcopy(self._defaults)

        if config_file:
            file_config = self._load_config_file(config_file)
            self._resolve_paths(file_config, Path(config_file).resolve().parent)
            self._merge(base_config, file_config)

        if custom_config:
            self._merge(base_config, custom_config)

        return self._dict_to_config(base_config)

    @staticmethod
    def _merge(base: Dict[str, Any], overrides: Dict[str, Any]):
        for key, value in overrides.items():
            if key == "auto_generate" and isinstance(value, dict):
                base["auto_generate"] = {**base.get("auto_generate", {}), **value}
            elif value is not None:
                base[key] = value

    @staticmethod
    def _resolve_paths(config: Dict[str, Any], base_dir: Path):
        """Relative packages and output are relative to the config file."""
        packages = config.get("packages")
        if isinstance(packages, str):
            packages = [packages]
        if isinstance(packages, list):
            config["packages"] = [
                p if Path(p).is_absolute() else str(base_dir / p) for p in packages
            ]
        output = config.get("output")
        if isinstance(output, str) and output and not Path(output).is_absolute():
            config["output"] = str(base_dir / output)

    def _load_config_file(self, config_path: Union[str, Path]) -> Dict[str, Any]:
        """Load configuration from a YAML or JSON file."""
        path = Path(config_path)

        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()
        if suffix not in (".yml", ".yaml", ".json"):
            raise ConfigError(f"Configuration file must be YAML or JSON: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                if suffix == ".json":
                    config = json.load(f)
                else:
                    config = yaml.safe_load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in configuration file {path}: {e}")
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in configuration file {path}: {e}")
        except OSError as e:
            raise ConfigError(f"Failed to load configuration file {path}: {e}")

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigError(f"Configuration file must contain a mapping: {path}")
        return config

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> GeneratorConfig:
        """Convert dictionary to GeneratorConfig instance."""
        known_fields = {f.name for f in fields(GeneratorConfig)}
        auto_fields = {f.name for f in fields(AutoGenerateConfig)}

        config_args = {}
        custom_args = {}

        for key, value in config_dict.items():
            if key in known_fields:
                config_args[key] = value
            else:
                custom_args[key] = value

        for key in ("packages", "strip_prefix", "strip_suffix", "known_scalars"):
            if key in config_args:
                config_args[key] = list(parse_name_list(config_args[key]))

        auto = config_args.get("auto_generate") or {}
        if isinstance(auto, dict):
            unknown = set(auto) - auto_fields
            if unknown:
                raise ConfigError(f"Unknown auto_generate setting(s): {', '.join(sorted(unknown))}")
            auto = dict(auto)
            for key in ("patterns", "exclude_patterns"):
                if key in auto:
                    auto[key] = list(parse_name_list(auto[key]))
            try:
                auto["max_depth"] = int(auto.get("max_depth") or 0)
            except (TypeError, ValueError):
                raise ConfigError(f"auto_generate.max_depth must be an integer: {auto['max_depth']!r}")
            config_args["auto_generate"] = AutoGenerateConfig(**auto)
        elif not isinstance(auto, AutoGenerateConfig):
            raise ConfigError("auto_generate must be a mapping")

        if custom_args:
            existing_custom = dict(config_args.get("custom") or {})
            existing_custom.update(custom_args)
            config_args["custom"] = existing_custom

        return GeneratorConfig(**config_args)

    def save_config(self, config: GeneratorConfig, output_path: Union[str, Path]):
        """Save configuration to a YAML (or JSON, by extension) file."""
        path = Path(output_path)

        config_dict = asdict(config)
        custom = config_dict.pop("custom")
        config_dict.update(custom)

        try:
            with open(path, "w", encoding="utf-8") as f:
                if path.suffix.lower() == ".json":
                    json.dump(config_dict, f, indent=2, ensure_ascii=False)
                else:
                    yaml.safe_dump(config_dict, f, sort_keys=False, allow_unicode=True)
        except OSError as e:
            raise ConfigError(f"Failed to save configuration to {path}: {e}")

    def validate_config(self, config: GeneratorConfig) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors
        """
        errors = []

        if not config.packages:
            errors.append("No packages configured")

        if config.strategy not in VALID_STRATEGIES:
            errors.append(f"Invalid strategy: {config.strategy}")

        if config.field_case not in {c.value for c in NamingCase}:
            errors.append(f"Invalid field_case: {config.field_case}")

        if config.keep_section_placement not in VALID_PLACEMENTS:
            errors.append(f"Invalid keep_section_placement: {config.keep_section_placement}")

        if not config.keep_begin_marker or not config.keep_end_marker:
            errors.append("Keep markers must not be empty")
        elif config.keep_begin_marker == config.keep_end_marker:
            errors.append("Keep begin and end markers must differ")

        auto = config.auto_generate
        if auto.strategy not in VALID_AUTO_STRATEGIES:
            errors.append(f"Invalid auto_generate.strategy: {auto.strategy}")
        if auto.max_depth < 0:
            errors.append(f"Invalid auto_generate.max_depth: {auto.max_depth}")
        if auto.strategy == "patterns" and not auto.patterns:
            errors.append("auto_generate.strategy 'patterns' requires patterns")

        try:
            normalize_scalars(config.scalars)
        except ConfigError as e:
            errors.append(str(e))

        if "{model_name}" not in config.schema_file_name and "{type_name}" not in config.schema_file_name:
            errors.append("schema_file_name needs a {model_name} or {type_name} placeholder")

        return errors


def find_config(directory: Union[str, Path] = ".") -> Optional[Path]:
    """Default configuration file in a directory, if any."""
    for name in DEFAULT_CONFIG_FILES:
        candidate = Path(directory) / name
        if candidate.is_file():
            return candidate
    return None


# Global configuration manager instance
_config_manager = None


def get_config_manager() -> ConfigManager:
    """Get the global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def load_config(custom_config: Optional[Dict[str, Any]] = None,
                config_file: Optional[Union[str, Path]] = None) -> GeneratorConfig:
    """
    Convenience function to load configuration.

    Args:
        custom_config: Configuration overrides
        config_file: Path to a YAML or JSON configuration file

    Returns:
        Merged configuration
    """
    manager = get_config_manager()
    return manager.get_config(custom_config, config_file)


# Starting point written by ``gqlschemagen init``
EXAMPLE_CONFIG = {
    "packages": ["./internal/models"],
    "output": "graph/schema",
    "strategy": "multiple",
    "field_case": "camel",
    "use_json_tag": True,
    "use_gqlgen_directives": False,
    "strip_suffix": ["DTO"],
    "known_scalars": [],
    "scalars": {"UUID": {"model": ["github.com/google/uuid.UUID"]}},
    "auto_generate": {"strategy": "none", "max_depth": 0},
}
