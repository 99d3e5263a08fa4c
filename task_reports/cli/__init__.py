"""Command line interface for task-reports."""
