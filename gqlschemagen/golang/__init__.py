"""Go source scanning: lexer, parser, struct tags and the package scanner."""
