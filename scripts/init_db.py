#!/usr/bin/env python3
"""
MongoDB Database Initialization Script for Tubely.

Creates the indexes on the ``videos`` collection, optionally seeds draft
video records for a user and prints a bearer token for that user so the
upload endpoints can be exercised with curl. Safe to run repeatedly.

Usage:
    python scripts/init_db.py [options]

Options:
    --drop              Drop the videos collection first (WARNING: destructive)
    --seed N            Insert N draft videos for the user
    --user-id UUID      Owner of seeded videos and subject of the printed token
    --verbose           Display detailed operation logs
    --help              Show this help message and exit

Environment Variables:
    MONGODB_URI         MongoDB connection URI (default: mongodb://localhost:27017)
    MONGODB_DB_NAME     Database name (default: tubely)
    SECRET_KEY          Token signing secret, as used by the API
"""

import argparse
import os
import sys
import time

from datetime import UTC, datetime
from uuid import UUID, uuid4

from dotenv import load_dotenv
from pymongo import ASCENDING, DESCENDING, IndexModel, MongoClient
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from tubely.core.auth import create_access_token
from tubely.core.database import VIDEOS_COLLECTION
from tubely.models.video import Video


DEFAULT_MONGODB_URI = "mongodb://localhost:27017"
DEFAULT_DATABASE_NAME = "tubely"
CONNECTION_TIMEOUT_MS = 5000

SAMPLE_TITLES = [
    "Boots in the rain",
    "Unboxing the new camera",
    "Morning run, vertical cut",
    "Studio tour",
    "Timelapse: city at night",
]


class DatabaseInitializer:
    """Sets up the Tubely database: indexes and optional seed data."""

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose
        self.client: MongoClient | None = None
        self.db: Database | None = None

    def log(self, message: str, level: str = "INFO") -> None:
        if level == "DEBUG" and not self.verbose:
            return
        timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
        print(f"[{timestamp}] [{level}] {message}")

    def connect(self) -> bool:
        """
        Connect to MongoDB, retrying connection failures with backoff.

        Returns:
            True if connection successful, False otherwise.
        """
        load_dotenv()

        mongodb_uri = os.getenv("MONGODB_URI", DEFAULT_MONGODB_URI)
        db_name = os.getenv("MONGODB_DB_NAME", DEFAULT_DATABASE_NAME)
        self.log(f"Connecting to MongoDB at {self._mask_uri(mongodb_uri)}...")

        max_retries = 3
        retry_delay = 2

        for attempt in range(1, max_retries + 1):
            try:
                self.client = MongoClient(
                    mongodb_uri,
                    serverSelectionTimeoutMS=CONNECTION_TIMEOUT_MS,
                    uuidRepresentation="standard",
                    tz_aware=True,
                )
                self.client.admin.command("ping")
                self.db = self.client[db_name]
                self.log(f"Connected, using database: {db_name}")
                return True

            except ServerSelectionTimeoutError as e:
                self.log(f"Server selection timeout: {e}", "ERROR")
                self.log("Ensure MongoDB is running and accessible at the configured URI.", "ERROR")
                return False

            except ConnectionFailure as e:
                self.log(f"Connection attempt {attempt}/{max_retries} failed: {e}", "WARNING")
                if attempt < max_retries:
                    self.log(f"Retrying in {retry_delay} seconds...")
                    time.sleep(retry_delay)
                    retry_delay *= 2

        self.log("Failed to connect after all retry attempts", "ERROR")
        return False

    def _mask_uri(self, uri: str) -> str:
        """Hide credentials in a MongoDB URI before printing it."""
        if "@" in uri:
            protocol_end = uri.find("://") + 3
            return f"{uri[:protocol_end]}***:***{uri[uri.find('@'):]}"
        return uri

    def drop_videos(self) -> None:
        self.log("Dropping the videos collection", "WARNING")
        self.db.drop_collection(VIDEOS_COLLECTION)

    def create_indexes(self) -> None:
        """Create the per-user listing indexes used by the API."""
        indexes = [
            IndexModel([("user_id", ASCENDING)], name="user_id_idx"),
            IndexModel(
                [("user_id", ASCENDING), ("created_at", DESCENDING)],
                name="user_id_created_at_idx",
            ),
        ]
        created = self.db[VIDEOS_COLLECTION].create_indexes(indexes)
        self.log(f"Indexes on {VIDEOS_COLLECTION}: {', '.join(created)}")

    def seed_videos(self, user_id: UUID, count: int) -> list[Video]:
        """Insert ``count`` draft videos owned by ``user_id``."""
        videos = [
            Video(
                user_id=user_id,
                title=SAMPLE_TITLES[index % len(SAMPLE_TITLES)],
                description="Seeded draft",
            )
            for index in range(count)
        ]
        if videos:
            self.db[VIDEOS_COLLECTION].insert_many([video.to_document() for video in videos])
        for video in videos:
            self.log(f"Seeded video {video.id} ({video.title})", "DEBUG")
        self.log(f"Seeded {len(videos)} draft video(s) for user {user_id}")
        return videos

    def close(self) -> None:
        if self.client:
            self.client.close()
            self.log("MongoDB connection closed", "DEBUG")


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Initialize MongoDB for the Tubely API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/init_db.py                      # Create indexes only
  python scripts/init_db.py --seed 3             # Seed 3 drafts for a new user
  python scripts/init_db.py --seed 1 --user-id 0d9d2a0b-3c43-4a55-b7a9-2e6c1f0d5a10
  python scripts/init_db.py --drop               # Drop videos first (DESTRUCTIVE)
        """,
    )
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop the videos collection before creation (WARNING: destructive operation)",
    )
    parser.add_argument("--seed", type=int, default=0, metavar="N", help="Seed N draft videos")
    parser.add_argument(
        "--user-id",
        type=UUID,
        default=None,
        help="Owner of seeded videos and subject of the printed token (default: random)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Display detailed operation logs"
    )
    return parser.parse_args()


def main() -> int:
    """
    Main entry point for the database initialization script.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    args = parse_arguments()

    print("\n" + "=" * 60)
    print("Tubely - MongoDB Database Initialization")
    print("=" * 60 + "\n")

    initializer = DatabaseInitializer(verbose=args.verbose)
    user_id = args.user_id or uuid4()

    try:
        if not initializer.connect():
            print("\nFailed to connect to MongoDB. Exiting.")
            return 1

        if args.drop:
            confirmation = input(
                "\nWARNING: This will DELETE ALL video records.\nType 'yes' to confirm: "
            )
            if confirmation.lower() != "yes":
                print("Operation cancelled.")
                return 0
            initializer.drop_videos()

        initializer.create_indexes()
        videos = initializer.seed_videos(user_id, args.seed)

    except KeyboardInterrupt:
        print("\n\nInitialization interrupted by user.")
        return 130

    except PyMongoError as e:
        print(f"\nMongoDB error: {e}")
        return 1

    finally:
        initializer.close()

    print("\n" + "-" * 60)
    print(f"User:   {user_id}")
    for video in videos:
        print(f"Video:  {video.id}  {video.title}")
    print(f"Token:  {create_access_token(user_id)}")
    print("-" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
