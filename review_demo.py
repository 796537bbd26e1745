"""
Example: load a markdown plan into SQLite + Whoosh, print its blocks, open a
thread on the first block and print the export report.

Usage:
    python3 review_demo.py --plan /path/to/plan.md --title "My Plan" --plan-id plan-1
"""

import argparse
import logging
from pathlib import Path

from plan_review.markdown import gutter_label, parse
from plan_review.review import (
    Identity,
    ReviewService,
    SqlAlchemyReviewRepository,
    WhooshIndexer,
)


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler()],
        force=True,
    )


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--plan", required=True, type=Path, help="Path to a markdown plan")
    parser.add_argument("--title", required=True, help="Plan title")
    parser.add_argument("--plan-id", default="plan-demo", help="Plan id (for DB and index)")
    parser.add_argument("--db", default=Path("./data/plan_review.db"), type=Path, help="SQLite DB path")
    parser.add_argument("--whoosh-dir", default=Path("./data/whoosh"), type=Path, help="Whoosh index directory")
    parser.add_argument("--email", default="demo@example.com", help="Reviewer email")
    parser.add_argument("--name", default="Demo", help="Reviewer name")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    setup_logging(args.verbose)
    if not args.plan.exists():
        raise FileNotFoundError(f"Plan not found: {args.plan}")
    content = args.plan.read_text(encoding="utf-8")

    args.db.parent.mkdir(parents=True, exist_ok=True)
    repo = SqlAlchemyReviewRepository(f"sqlite+pysqlite:///{args.db}")
    try:
        service = ReviewService(repo, WhooshIndexer(args.whoosh_dir))
        identity = Identity(email=args.email, name=args.name)

        if repo.get_plan(args.plan_id):
            version = service.submit_version(args.plan_id, content, identity)
        else:
            service.create_plan(args.plan_id, args.title, content, identity, plan_filename=args.plan.name)
            version = service.get_version(args.plan_id, 1)
        print(f"Plan {args.plan_id} at version {version.version}")

        blocks = parse(version.content)
        for block in blocks:
            first_line = block.content.split("\n", 1)[0]
            print(f"{gutter_label(block):>10}  {block.type.value:<10}  {first_line[:60]}")

        if blocks:
            first = blocks[0]
            service.create_thread(
                args.plan_id,
                version.version,
                first.id,
                first.start_line,
                first.end_line,
                "Demo comment on the first block.",
                identity,
            )
        print()
        print(service.export(args.plan_id))
    finally:
        repo.close()


if __name__ == "__main__":
    main()
