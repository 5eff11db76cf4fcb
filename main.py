"""Stakeholder Profiler

Simple CLI for building one profile without starting the API server.
"""

import argparse
import asyncio
import json
import sys

from stakeholder.agents.orchestrator import ProfileOrchestrator
from stakeholder.errors import ProfilerError
from stakeholder.models.pipeline import ProgressEvent
from stakeholder.models.schemas import ProfileRequest


class ConsoleProgressSink:
    async def emit(self, event: ProgressEvent) -> None:
        marker = "[!]" if event.is_retry else "[~]"
        print(f"{marker} {event.message}", file=sys.stderr)


async def run_profile(name: str, role: str | None, organisation: str | None) -> int:
    """Run the pipeline for one subject and print the profile as JSON."""
    request = ProfileRequest(name=name, role=role, organisation=organisation)
    print(f"Profile subject: {request.describe()}", file=sys.stderr)
    print("-" * 50, file=sys.stderr)

    try:
        orchestrator = ProfileOrchestrator.from_settings()
        run = await orchestrator.run(request, ConsoleProgressSink())
    except ProfilerError as e:
        print(f"\n[!] Error: {e.message}", file=sys.stderr)
        return 2

    if not run.succeeded or run.profile is None:
        message = run.error.message if run.error else "Unknown error"
        print(f"\n[!] Error: {message}", file=sys.stderr)
        raw = getattr(run.error, "raw", "")
        if raw:
            print(f"    Raw response starts with: {raw}", file=sys.stderr)
        return 1

    print(f"\n[*] Profile complete in {run.runtime_ms}ms", file=sys.stderr)
    print(f"    Sources: {len(run.profile.sources)}", file=sys.stderr)
    print(json.dumps(run.profile.to_payload(), indent=2, ensure_ascii=False))
    return 0


def main():
    parser = argparse.ArgumentParser(description="Stakeholder profile builder")
    parser.add_argument("--name", "-n", required=True, help="Full name of the subject")
    parser.add_argument("--role", "-r", help="Current job title")
    parser.add_argument("--organisation", "-o", help="Organisation")

    args = parser.parse_args()

    sys.exit(asyncio.run(run_profile(args.name, args.role, args.organisation)))


if __name__ == "__main__":
    main()
