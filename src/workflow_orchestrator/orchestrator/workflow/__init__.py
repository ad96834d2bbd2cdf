"""Workflow orchestration core.

This package provides first-class types for:
- Workflow definitions and steps (templates, in memory only)
- Durable workflow instances with a persisted status state machine
- Step execution with conditions, timeouts and a named action registry
- The engine that drives instances step by step and exposes pause/resume/cancel

Modules are imported directly (e.g. ``...workflow.engine``); this package
itself stays import-free so the state layer can depend on ``models`` alone.
"""

__all__: list[str] = []
