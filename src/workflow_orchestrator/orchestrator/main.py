"""CLI entrypoint for the workflow orchestrator."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from workflow_orchestrator import __version__
from workflow_orchestrator.core.config import WorkflowConfig
from workflow_orchestrator.orchestrator.workflow.conditions import parse_value
from workflow_orchestrator.orchestrator.workflow.engine import WorkflowEngine, create_engine
from workflow_orchestrator.orchestrator.workflow.models import ExecutionOptions, WorkflowStatus

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_NOT_FOUND = 2


def _parse_vars(values: Sequence[str] | None) -> dict[str, Any]:
    variables: dict[str, Any] = {}
    for item in values or []:
        name, sep, raw = item.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"Invalid --var {item!r}, expected NAME=VALUE")
        variables[name.strip()] = parse_value(raw)
    return variables


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-orchestrator",
        description="Durable, resumable step-execution engine for named workflows",
    )
    parser.add_argument(
        "--version", action="version", version=f"workflow-orchestrator {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List registered workflow definitions")

    run = subparsers.add_parser("run", help="Start a new instance of a workflow")
    run.add_argument("workflow_id", help="Workflow definition id")
    run.add_argument(
        "--var",
        action="append",
        default=None,
        metavar="NAME=VALUE",
        help="Initial context variable (repeatable); values use the condition literal syntax",
    )
    run.add_argument(
        "--timeout",
        type=int,
        default=None,
        help="Per-step timeout override in milliseconds",
    )
    run.add_argument(
        "--start-from",
        default=None,
        help="Step id to start from instead of the first step",
    )

    resume = subparsers.add_parser("resume", help="Resume a paused instance")
    resume.add_argument("instance_id")

    cancel = subparsers.add_parser("cancel", help="Cancel a non-terminal instance")
    cancel.add_argument("instance_id")

    status = subparsers.add_parser("status", help="Print the persisted state of an instance")
    status.add_argument("instance_id")

    instances = subparsers.add_parser("instances", help="List persisted instances")
    instances.add_argument(
        "--status",
        choices=[s.value for s in WorkflowStatus],
        default=None,
        help="Only show instances with this status",
    )
    instances.add_argument("--workflow", default=None, help="Only show instances of a workflow")

    subparsers.add_parser("stats", help="Show instance counts per status")
    subparsers.add_parser("clear-completed", help="Delete instances in a terminal status")

    serve = subparsers.add_parser("serve", help="Run the REST API server")
    serve.add_argument("--host", default=None, help="Bind address (default from settings)")
    serve.add_argument("--port", type=int, default=None, help="Port (default from settings)")

    return parser


def _cmd_instances(engine: WorkflowEngine, args: argparse.Namespace) -> int:
    states = engine.get_workflow_instances()
    if args.status:
        states = [s for s in states if s.status.value == args.status]
    if args.workflow:
        states = [s for s in states if s.workflow_id == args.workflow]
    if not states:
        print("No workflow instances found")
        return EXIT_OK
    for state in states:
        print(
            f"{state.instance_id}  {state.workflow_id:<20} {state.status.value:<10} "
            f"step {state.current_step_index}  created {state.created_at.isoformat()}"
        )
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = WorkflowConfig()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_FAILED

    config.setup_logging()

    if args.command == "serve":
        import uvicorn

        from workflow_orchestrator.server import create_app
        from workflow_orchestrator.server.config import ServerSettings

        settings = ServerSettings()
        uvicorn.run(
            create_app(config=config),
            host=args.host or settings.host,
            port=args.port or settings.port,
            log_config=None,
        )
        return EXIT_OK

    try:
        engine = create_engine(config)

        if args.command == "list":
            print(engine.format_workflows(), end="")
            return EXIT_OK

        if args.command == "run":
            options = ExecutionOptions(
                initial_context=_parse_vars(args.var),
                start_from_step=args.start_from,
                timeout=args.timeout,
            )
            result = asyncio.run(engine.start_workflow(args.workflow_id, options))
            print(engine.format_result(result))
            if not result.instance_id:
                return EXIT_NOT_FOUND
            return EXIT_OK if result.success else EXIT_FAILED

        if args.command == "resume":
            if engine.get_workflow_state(args.instance_id) is None:
                print(f"Workflow instance not found: {args.instance_id}", file=sys.stderr)
                return EXIT_NOT_FOUND
            result = asyncio.run(engine.resume_workflow(args.instance_id))
            print(engine.format_result(result))
            return EXIT_OK if result.success else EXIT_FAILED

        if args.command == "cancel":
            if engine.get_workflow_state(args.instance_id) is None:
                print(f"Workflow instance not found: {args.instance_id}", file=sys.stderr)
                return EXIT_NOT_FOUND
            if not engine.cancel_workflow(args.instance_id):
                state = engine.get_workflow_state(args.instance_id)
                status = state.status.value if state is not None else "unknown"
                print(f"Cannot cancel workflow (status: {status})", file=sys.stderr)
                return EXIT_FAILED
            print(f"Cancelled {args.instance_id}")
            return EXIT_OK

        if args.command == "status":
            state = engine.get_workflow_state(args.instance_id)
            if state is None:
                print(f"Workflow instance not found: {args.instance_id}", file=sys.stderr)
                return EXIT_NOT_FOUND
            print(json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False))
            return EXIT_OK

        if args.command == "instances":
            return _cmd_instances(engine, args)

        if args.command == "stats":
            for name, count in engine.get_stats().items():
                print(f"{name:<10} {count}")
            return EXIT_OK

        if args.command == "clear-completed":
            print(f"Cleared {engine.clear_completed()} finished instances")
            return EXIT_OK

        logger.error("Unknown command", extra={"command": args.command})
        return EXIT_NOT_FOUND

    except ValueError as e:
        print(str(e), file=sys.stderr)
        return EXIT_FAILED

    except Exception:
        logger.exception("Command failed")
        return EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
