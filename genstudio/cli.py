"""Command-line runner: submit one generation job and follow it to the result.

Usage:
    python -m genstudio.cli kling-text2video --prompt "A fox in the snow" --output fox.mp4
    python -m genstudio.cli flux-text2image --prompt "Lighthouse" --param width=1024 --persist
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from genstudio.config import get_settings
from genstudio.jobs.pipeline import JobOutcome, create_pipeline
from genstudio.models.job import GenerationJob
from genstudio.utils.errors import GenStudioError

logger = logging.getLogger(__name__)


JSON_LITERALS = ("true", "false", "null")


def parse_param(raw: str) -> tuple[str, Any]:
    """
    Parse ``key=value``.

    Values stay text (``duration=5`` is ``"5"``) and parameter validation
    coerces numbers. Objects, arrays, quoted strings and true/false/null are
    decoded as JSON.
    """
    if "=" not in raw:
        raise argparse.ArgumentTypeError(f"expected key=value, got {raw!r}")
    key, value = raw.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError(f"missing parameter name in {raw!r}")

    stripped = value.strip()
    if stripped[:1] in ("{", "[", '"') or stripped in JSON_LITERALS:
        try:
            return key, json.loads(stripped)
        except json.JSONDecodeError as e:
            raise argparse.ArgumentTypeError(f"invalid JSON for {key}: {e}")
    return key, value


def build_params(args: argparse.Namespace) -> dict[str, Any]:
    params: dict[str, Any] = {}
    if args.params_file:
        params.update(json.loads(Path(args.params_file).read_text()))
    if args.prompt is not None:
        params["prompt"] = args.prompt
    for key, value in args.param or []:
        params[key] = value
    return params


def print_update(job: GenerationJob) -> None:
    print(
        f"  [{job.status.value:>10}] {round(job.progress * 100):3d}%  "
        f"attempt {job.attempts}  ({job.provider_status or '-'})"
    )


def report(outcome: JobOutcome, output: Optional[str]) -> int:
    job = outcome.job
    print()
    print(f"Job {job.job_id}: {job.status.value}")

    if outcome.error:
        print(f"Error ({outcome.error.kind}): {outcome.error.message}")
        for suggestion in outcome.error.suggestions:
            print(f"  - {suggestion}")

    if outcome.artifact is not None:
        artifact = outcome.artifact
        print(f"Result via {artifact.transport}: {artifact.size} bytes ({artifact.content_type})")
        if artifact.source_url:
            print(f"Source: {artifact.source_url}")
        if output and artifact.content:
            Path(output).write_bytes(artifact.content)
            print(f"Saved to {output}")

    if outcome.saved is not None:
        print(f"Stored: {outcome.saved.public_url}")

    return 0 if outcome.succeeded and outcome.error is None else 1


async def run(args: argparse.Namespace) -> int:
    pipeline = create_pipeline(persist=args.persist)
    params = build_params(args)

    print(f"Submitting {args.operation}...")
    try:
        outcome = await pipeline.run(
            args.operation,
            params,
            on_update=print_update,
            persist=args.persist,
            user_id=args.user_id,
        )
    except GenStudioError as e:
        print(f"Submission failed ({e.kind}): {e.message}", file=sys.stderr)
        for suggestion in e.suggestions:
            print(f"  - {suggestion}", file=sys.stderr)
        return 2

    return report(outcome, args.output)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run an image, video or audio generation job")
    parser.add_argument("operation", help="Operation key, e.g. kling-text2video or flux-kontext-pro")
    parser.add_argument("--prompt", help="Generation prompt")
    parser.add_argument(
        "--param",
        action="append",
        type=parse_param,
        metavar="KEY=VALUE",
        help="Extra parameter (repeatable); JSON values are decoded",
    )
    parser.add_argument("--params-file", help="JSON file with parameters")
    parser.add_argument("--output", "-o", help="Write the result bytes to this file")
    parser.add_argument("--persist", action="store_true", help="Save the result to Supabase")
    parser.add_argument("--user-id", help="Owner recorded with persisted media")
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
