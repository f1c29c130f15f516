#!/usr/bin/env python3
"""Drop the MovieMate collections to start from an empty database."""

from dotenv import load_dotenv

load_dotenv()

from moviemate.database import get_database

COLLECTIONS = ["accounts", "users", "events"]


def reset_all_collections():
    """Drop all collections and start fresh."""
    db = get_database()

    print("Clearing all collections...")
    for collection_name in COLLECTIONS:
        try:
            db[collection_name].drop()
            print(f"   dropped {collection_name}")
        except Exception as e:
            print(f"   could not drop {collection_name}: {e}")

    print("\nDatabase reset complete.")


if __name__ == "__main__":
    print(f"This will DELETE every document in: {', '.join(COLLECTIONS)}")

    confirm = input("\nAre you sure? Type 'yes' to continue: ")
    if confirm.lower() == 'yes':
        reset_all_collections()
    else:
        print("Reset cancelled.")
