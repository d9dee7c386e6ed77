#!/usr/bin/env python3
"""
Library Maintenance Utility

This script provides utilities to inspect and repair the author/book links:
- Show library statistics
- List books left without any author
- List books linked to authors that no longer exist
- Remove those dangling author links
"""

import asyncio
import sys

from library.database import LibraryDatabase
from utilities.config import config
from utilities.logger import get_logger, setup_logging

USAGE = """Usage: python manage_library.py [stats|orphans|dangling|cleanup]

Commands:
  stats     - Show library statistics
  orphans   - List books that have no author left
  dangling  - List books linked to missing authors
  cleanup   - Remove links to missing authors"""


def get_database() -> LibraryDatabase:
    return LibraryDatabase(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database
    )


async def show_statistics(database: LibraryDatabase):
    """Show library statistics."""
    print("\n" + "=" * 80)
    print("📊 LIBRARY STATISTICS")
    print("=" * 80)

    stats = await database.get_database_stats()
    print(f"👤 Total Authors: {stats['total_authors']}")
    print(f"📚 Total Books: {stats['total_books']}")
    print(f"🕳️  Books Without Authors: {stats['books_without_authors']}")
    print(f"🔗 Books With Dangling Authors: {stats['books_with_dangling_authors']}")

    if stats["books_with_dangling_authors"] > 0:
        print(f"\n⚠️  Warning: {stats['books_with_dangling_authors']} books reference missing authors!")
        print("   Run cleanup to remove those links.")


async def list_orphans(database: LibraryDatabase):
    """List books that have no author left."""
    print("\n" + "=" * 80)
    print("🕳️  BOOKS WITHOUT AUTHORS")
    print("=" * 80)

    books = await database.books.find_without_authors()
    if not books:
        print("✅ Every book has at least one author")
        return

    print(f"Found {len(books)} books:")
    print()
    for i, book in enumerate(books, 1):
        print(f"{i:3d}. Book ID: {book.id}")
        print(f"     Title: {book.title}")
        print(f"     ISBN: {book.isbn}")
        print()


async def list_dangling(database: LibraryDatabase):
    """List books linked to authors that no longer exist."""
    print("\n" + "=" * 80)
    print("🔗 DANGLING AUTHOR LINKS")
    print("=" * 80)

    dangling = await database.books.find_dangling_references()
    if not dangling:
        print("✅ No dangling author links found")
        return

    for book_id, author_ids in sorted(dangling.items()):
        print(f"   Book ID {book_id}: missing authors {author_ids}")


async def cleanup_dangling(database: LibraryDatabase):
    """Remove links to authors that no longer exist."""
    print("\n🧹 CLEANING UP DANGLING AUTHOR LINKS")
    print("=" * 80)

    dangling = await database.books.find_dangling_references()
    missing = sorted({author_id for author_ids in dangling.values() for author_id in author_ids})
    if not missing:
        print("✅ Nothing to clean up")
        return

    modified = await database.books.remove_author_references(missing)
    print(f"✅ Removed links to {len(missing)} missing authors from {modified} books")


COMMANDS = {
    "stats": show_statistics,
    "orphans": list_orphans,
    "dangling": list_dangling,
    "cleanup": cleanup_dangling,
}


async def main():
    """Main function."""
    if len(sys.argv) != 2:
        print(USAGE)
        sys.exit(1)

    command = COMMANDS.get(sys.argv[1].lower())
    if command is None:
        print(f"❌ Unknown command: {sys.argv[1]}")
        print(f"Available commands: {', '.join(COMMANDS)}")
        sys.exit(1)

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger = get_logger(__name__)

    database = get_database()
    try:
        await database.connect()
        logger.info("Running maintenance command", command=sys.argv[1].lower())
        await command(database)
    except Exception as e:
        logger.error("Maintenance command failed", command=sys.argv[1].lower(), error=str(e))
        print(f"❌ Error running {sys.argv[1]}: {e}")
        sys.exit(1)
    finally:
        await database.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
