"""Command-line interface for ora-pipeline."""
