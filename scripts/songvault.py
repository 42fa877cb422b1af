#!/usr/bin/env python3
"""
Command-line entry point for song ingestion, similarity search and audio
download.
"""

import argparse
import sys

from songvault.commands import SongVault


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Ingest songs and search them by semantic similarity",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ingest https://example.com/files/track.mp3
  %(prog)s search "uplifting electronic song about hope" -k 5
  %(prog)s download 1 --output ./downloaded_song.mp3

Environment variables:
- DB_PATH=./data/songvault.db
- RAPID_API_KEY=... (required for ingest)
- EMBED_PROVIDER=google|sentence|hash (default hash)
- GOOGLE_API_KEY=... (required for EMBED_PROVIDER=google)
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest_parser = subparsers.add_parser("ingest", help="Ingest a song by its source URL")
    ingest_parser.add_argument("source_key", help="URL of the audio file")

    search_parser = subparsers.add_parser("search", help="Find songs similar to a text query")
    search_parser.add_argument("query", help="Free-text description")
    search_parser.add_argument("-k", type=int, default=None, help="Number of results (default: SEARCH_TOP_K)")

    download_parser = subparsers.add_parser("download", help="Download a stored song's audio")
    download_parser.add_argument("song_id", type=int, help="Song id")
    download_parser.add_argument("--output", "-o", default="./downloaded_song.mp3", help="Output file path")

    args = parser.parse_args(argv)
    vault = SongVault.from_env()

    if args.command == "ingest":
        result = vault.ingest(args.source_key)
    elif args.command == "search":
        result = vault.search(args.query, args.k)
    else:
        result = vault.download(args.song_id, args.output)

    if not result.ok:
        print(f"❌ {args.command} failed at stage '{result.stage}': {result.message}")
        return 1

    print(f"✅ {result.message}")
    for hit in result.data.get("results", []):
        print(f"- {hit['summary']} | Similarity: {hit['score']:.4f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
