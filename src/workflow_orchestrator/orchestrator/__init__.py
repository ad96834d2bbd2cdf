"""Orchestrator package: workflow core, logging and the command-line entrypoint."""
