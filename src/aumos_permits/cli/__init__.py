"""Command-line interface for aumos-permits."""
