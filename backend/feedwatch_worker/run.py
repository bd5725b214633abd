"""
Start a worker for one job queue with that queue's concurrency ceiling.

    python -m feedwatch_worker.run ai-insights
    python -m feedwatch_worker.run risk-assessment
    python -m feedwatch_worker.run beat
"""
import argparse
import sys

from feedwatch_worker.celery import app
from feedwatch_worker.jobs import JOB_KINDS, get_job_kind_for_queue


def build_worker_argv(queue: str, loglevel: str = "INFO") -> list[str]:
    kind = get_job_kind_for_queue(queue)
    return [
        "worker",
        "--queues", kind.queue,
        "--concurrency", str(kind.concurrency),
        "--hostname", f"{kind.queue}@%h",
        "--loglevel", loglevel,
    ]


def main(argv=None):
    queues = [kind.queue for kind in JOB_KINDS.values()]
    parser = argparse.ArgumentParser(description="Run a feedwatch background worker")
    parser.add_argument("target", choices=queues + ["beat"])
    parser.add_argument("--loglevel", default="INFO")
    args = parser.parse_args(argv)

    if args.target == "beat":
        app.start(["beat", "--loglevel", args.loglevel])
    else:
        app.worker_main(build_worker_argv(args.target, args.loglevel))


if __name__ == "__main__":
    sys.exit(main())
