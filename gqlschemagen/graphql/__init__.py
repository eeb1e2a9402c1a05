"""GraphQL rendering and output writing."""

from .emitter import SchemaEmitter, emit_files
from .writer import OutputError, SchemaWriter

__all__ = ["SchemaEmitter", "emit_files", "OutputError", "SchemaWriter"]
