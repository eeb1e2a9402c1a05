"""Core records, naming, directives and configuration."""
