#!/usr/bin/env python3
"""Programmatic workflow example.

This demonstrates using the engine components directly:

* load settings from the environment / `.env`
* register a custom action and a workflow that uses it
* run an instance and print the formatted result

Initial variables are passed as arguments.
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Sequence

from workflow_orchestrator import WorkflowConfig, create_engine
from workflow_orchestrator.orchestrator.workflow.models import (
    ExecutionOptions,
    StepResult,
    WorkflowContext,
    WorkflowDefinition,
    WorkflowStep,
)


async def count_words(context: WorkflowContext) -> StepResult:
    text = str(context.variables.get("text", ""))
    words = len(text.split())
    context.variables["words"] = words
    return StepResult(success=True, output=words)


GREETING_WORKFLOW = WorkflowDefinition(
    id="greeting",
    name="Greeting",
    description="Counts the words in a message, then logs it when it is long enough",
    steps=(
        WorkflowStep(id="count", name="Count Words", action="countWords"),
        WorkflowStep(
            id="announce",
            name="Announce",
            action="log",
            condition="words >= 3",
        ),
    ),
)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a workflow (programmatic example).")
    parser.add_argument("--text", required=True, help="Text whose words are counted")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    config = WorkflowConfig()
    config.setup_logging()

    engine = create_engine(config)
    engine.register_action("countWords", count_words)
    engine.register_workflow(GREETING_WORKFLOW)

    result = asyncio.run(
        engine.start_workflow(
            "greeting",
            ExecutionOptions(initial_context={"text": args.text, "message": args.text}),
        )
    )

    print(engine.format_result(result))
    print(f"Persisted to: {config.state.storage_path}")
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
