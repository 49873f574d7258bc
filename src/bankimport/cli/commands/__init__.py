"""CLI commands for bankimport."""
