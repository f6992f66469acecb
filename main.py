"""MindBoost CLI entry point: print the analytics report for a stored user."""

import argparse
import logging
import sys

from mindboost import CognitiveEngine, EventStoreError, JsonFileEventStore, generate_report
from mindboost.synthetic import DEMO_USER_ID, generate_history

log = logging.getLogger("mindboost")


def main():
    parser = argparse.ArgumentParser(description="MindBoost training report")
    parser.add_argument("--store", default="mindboost_data.json", help="Path to the JSON event store")
    parser.add_argument("--user", default=DEMO_USER_ID, help="User id to analyze")
    parser.add_argument("--seed-demo", action="store_true",
                        help="Seed synthetic history when the user has none")
    parser.add_argument("--days", type=int, default=60, help="Days of synthetic history to seed")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    store = JsonFileEventStore(args.store)
    engine = CognitiveEngine(store, args.user)
    try:
        if args.seed_demo and not engine.snapshot().daily_summaries:
            log.info("No history for %s, seeding %d synthetic days", args.user, args.days)
            store.seed(generate_history(args.user, days=args.days))
        result = engine.analyze()
    except EventStoreError as e:
        log.error("Event store unavailable: %s", e)
        sys.exit(1)

    print(generate_report(result, engine.cfg))


if __name__ == "__main__":
    main()
