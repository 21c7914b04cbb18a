"""Command-line interface for integration-audit."""
