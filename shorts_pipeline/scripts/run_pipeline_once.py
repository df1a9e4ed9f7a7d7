import argparse
import sys

from shorts_pipeline.database import SessionLocal
from shorts_pipeline.logging_config import configure_logging
from shorts_pipeline.services.orchestrator import RUNNABLE_STAGES, run_pipeline, run_pipeline_batch


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Advance one pipeline job by one stage")
    parser.add_argument("stage", type=int, choices=RUNNABLE_STAGES)
    parser.add_argument("--account", default=None, help="only jobs of this account")
    parser.add_argument("--persona", action="append", dest="personas", help="only jobs of this persona (repeatable)")
    parser.add_argument("--batch", type=int, default=1, help="number of concurrent single-job runs")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging()

    if args.batch > 1:
        outcomes = run_pipeline_batch(args.stage, size=args.batch, account_id=args.account, personas=args.personas)
    else:
        db = SessionLocal()
        try:
            outcomes = [run_pipeline(db, args.stage, account_id=args.account, personas=args.personas)]
        finally:
            db.close()

    for outcome in outcomes:
        print(outcome.model_dump_json())
    return 0 if all(o.success for o in outcomes) else 1


if __name__ == "__main__":
    sys.exit(main())
