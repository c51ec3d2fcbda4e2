#!/usr/bin/env python3
"""Submit a job posting and a résumé, then wait for the critique.

Examples:
  python -m client.cli --user-id u1 --email me@example.com --job-file jd.txt --resume-file cv.txt
  python -m client.cli --user-id u1 --email me@example.com --job-file jd.txt --resume-pdf cv.pdf
"""
import argparse
import asyncio
import json
import os
import sys
import time

from client.poll_client import (
    AnalysisTimeout,
    DEFAULT_INTERVAL_S,
    DEFAULT_MAX_ATTEMPTS,
    PollClient,
    SubmitError,
)
from client.progress import progress_step


def read_text_file(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


async def _run(args) -> int:
    job_text = read_text_file(args.job_file)
    resume_text = read_text_file(args.resume_file) if args.resume_file else None
    resume_pdf = None
    if args.resume_pdf:
        with open(args.resume_pdf, "rb") as f:
            resume_pdf = f.read()

    started = time.monotonic()
    last_step = None

    def show_progress(attempt, analysis):
        nonlocal last_step
        step = progress_step(time.monotonic() - started)
        if step != last_step:
            print(f"[{step.agent}] {step.name}...", file=sys.stderr)
            last_step = step

    async with PollClient(args.base_url, args.user_id, args.email,
                          interval=args.interval, max_attempts=args.max_attempts) as client:
        try:
            result = await client.analyze(
                job_text, resume_text=resume_text, resume_pdf=resume_pdf,
                filename=os.path.basename(args.resume_pdf) if args.resume_pdf else None,
                on_attempt=show_progress)
        except SubmitError as exc:
            print(f"Submit failed: {exc}", file=sys.stderr)
            return 2
        except AnalysisTimeout as exc:
            print(str(exc), file=sys.stderr)
            return 1

    print(json.dumps(result.model_dump(), indent=2, ensure_ascii=False))
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Critique a job posting against a résumé")
    parser.add_argument("--base-url", default=os.getenv("CRITIQUE_API_URL", "http://localhost:8000"))
    parser.add_argument("--user-id", required=True, help="Principal id sent as x-user-id")
    parser.add_argument("--email", required=True, help="Principal email sent as x-user-email")
    parser.add_argument("--job-file", required=True, help="File with the job description text")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--resume-file", help="Plain-text résumé")
    group.add_argument("--resume-pdf", help="PDF résumé, extracted server-side")
    parser.add_argument("--interval", type=float, default=DEFAULT_INTERVAL_S)
    parser.add_argument("--max-attempts", type=int, default=DEFAULT_MAX_ATTEMPTS)
    args = parser.parse_args(argv)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
