"""Command-line interface for GAG-ML."""
