#!/usr/bin/env python3
"""
Batch regenerate Prime scorecards after evidence or scoring-rule changes.

Usage:
    # Regenerate one subject (reuses a scorecard that is still current)
    python recalculate_prime_scorecards.py --subject-id user-123

    # Regenerate every subject that has stored metrics
    python recalculate_prime_scorecards.py --all-subjects

    # Always recompute, ignoring the reuse window
    python recalculate_prime_scorecards.py --all-subjects --force
"""
import sys
import os
import argparse
import logging
from datetime import datetime
from typing import List, Optional, Tuple

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from eden.core.config import settings
from eden.db.session import SessionLocal
from eden.prime_scorecard.errors import ConfigurationError
from eden.prime_scorecard.services import PrimeScorecardService

logger = logging.getLogger(__name__)


def recalculate_subjects(svc: PrimeScorecardService, subject_ids: List[str], force: bool = False) -> Tuple[int, int, int]:
    """
    Regenerate scorecards for the given subjects.

    Returns:
        Tuple of (generated_count, reused_count, error_count)
    """
    generated = 0
    reused = 0
    errors = 0

    for idx, subject_id in enumerate(subject_ids, 1):
        try:
            result = svc.generate(subject_id, force=force)
        except ConfigurationError:
            # Broken rule set: every subject would fail the same way
            raise
        except Exception as e:
            errors += 1
            logger.exception("Scorecard generation failed for %s", subject_id)
            print(f"  ✗ [{idx}/{len(subject_ids)}] {subject_id}: Error - {str(e)[:100]}")
            continue

        sc = result.scorecard
        prime = "n/a" if sc.prime_score is None else f"{sc.prime_score:.1f}"
        if result.is_cached:
            reused += 1
            print(f"  = [{idx}/{len(subject_ids)}] {subject_id}: reused scorecard {result.scorecard_id}")
        else:
            generated += 1
            print(
                f"  ✓ [{idx}/{len(subject_ids)}] {subject_id}: Prime={prime}, "
                f"Confidence={sc.prime_confidence:.1f} (scorecard {result.scorecard_id})"
            )

    return generated, reused, errors


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Batch regenerate Prime scorecards',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python recalculate_prime_scorecards.py --subject-id user-123
  python recalculate_prime_scorecards.py --all-subjects --limit-subjects 10
  python recalculate_prime_scorecards.py --all-subjects --force
        """
    )

    parser.add_argument(
        '--subject-id',
        type=str,
        help='Subject to regenerate (omit to use --all-subjects)',
        default=None
    )

    parser.add_argument(
        '--all-subjects',
        action='store_true',
        help='Regenerate every subject with stored metrics'
    )

    parser.add_argument(
        '--force',
        action='store_true',
        help='Recompute even when the latest scorecard is still current'
    )

    parser.add_argument(
        '--limit-subjects',
        type=int,
        help='Limit number of subjects to process (for testing)',
        default=None
    )

    args = parser.parse_args(argv)

    if not args.subject_id and not args.all_subjects:
        parser.error("Must specify either --subject-id or --all-subjects")

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    print("=" * 80)
    print("PRIME SCORECARD REGENERATION")
    print("=" * 80)
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"Scoring revision: {settings.SCORING_REVISION}")
    print(f"Force recalculation: {args.force}")
    print("=" * 80)

    db = SessionLocal()

    try:
        svc = PrimeScorecardService(db)
        if args.subject_id:
            subject_ids = [args.subject_id]
        else:
            subject_ids = svc.subject_ids()
            if args.limit_subjects:
                subject_ids = subject_ids[: args.limit_subjects]
        print(f"Processing {len(subject_ids)} subject(s)\n")

        generated, reused, errors = recalculate_subjects(svc, subject_ids, force=args.force)

        print()
        print("=" * 80)
        print("FINAL SUMMARY")
        print("=" * 80)
        print(f"Subjects processed: {len(subject_ids)}")
        print(f"Scorecards generated: {generated}")
        print(f"Scorecards reused: {reused}")
        print(f"Errors: {errors}")
        print(f"Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print("=" * 80)

        return 0 if errors == 0 else 1

    except ConfigurationError as e:
        print(f"\n✗ Scoring configuration invalid: {e}")
        return 2
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
