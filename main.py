"""
Main entrypoint for the place address enrichment backfill.

Usage:
    python main.py                 Enrich up to 100 places missing an address
    python main.py --limit 500     Enrich a larger backfill batch
    python main.py --serve         Run the API with uvicorn instead

Re-running is safe: places that already have street and city are skipped.
"""
import argparse
import logging
import os
import sys
from datetime import datetime

from src.db.database import SessionLocal, PlaceStore, create_tables
from src.geocoding.nominatim import NominatimClient, DEFAULT_LANGUAGE, RATE_LIMIT_DELAY
from src.geocoding.rate_limiter import RateLimiter
from src.services.enrichment import enrich_places

# Create logs directory
logs_dir = os.path.join(os.getcwd(), 'logs')
os.makedirs(logs_dir, exist_ok=True)

# Create log file with today's date
log_filename = os.path.join(logs_dir, f'enrichment_{datetime.now().strftime("%Y%m%d")}.log')

logger = logging.getLogger(__name__)


def parse_args(argv):
    parser = argparse.ArgumentParser(description="Fill in missing place addresses via reverse geocoding")
    parser.add_argument("--limit", type=int, default=100)
    parser.add_argument("--language", default=DEFAULT_LANGUAGE)
    parser.add_argument("--serve", action="store_true")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    return parser.parse_args(argv)


def run_backfill(limit=100, language=DEFAULT_LANGUAGE):
    db = SessionLocal()
    try:
        store = PlaceStore(db)
        place_ids = [place.id for place in store.find_candidates(limit=limit)]
        client = NominatimClient(RateLimiter(RATE_LIMIT_DELAY))
        return enrich_places(place_ids, store, client, batch_mode=True, language=language)
    finally:
        db.close()


def main(argv=None):
    """
    Main function to run the backfill.
    """
    args = parse_args(sys.argv[1:] if argv is None else argv)

    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_filename),
            logging.StreamHandler()
        ]
    )

    if args.serve:
        import uvicorn
        uvicorn.run("src.api.app:app", host=args.host, port=args.port)
        return 0

    try:
        # Initialize database tables
        create_tables()

        print(f"Starting address backfill for up to {args.limit} places...")
        report = run_backfill(limit=args.limit, language=args.language)

        print(f"\nBackfill completed")
        print(f"  {report.message}")
        for error in report.errors:
            print(f"  - {error}")

        return 0
    except Exception as e:
        print(f"An error occurred in the main function: {str(e)}")
        return 1


if __name__ == "__main__":
    exit_code = main()
    print(f"Exiting with code {exit_code}")
    sys.exit(exit_code)
