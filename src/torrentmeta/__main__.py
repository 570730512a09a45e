from argparse import ArgumentParser
from typing import List, Optional
import asyncio
import logging
import sys

from . import bencode
from . import source
from .errors import TorrentMetaError
from .metainfo import TorrentDescriptor
from .verify import verify_pieces


def print_info(meta: TorrentDescriptor) -> None:
	print("infohash:     ", meta.content_hash)
	print("name:         ", meta.name)
	print("announce:     ", meta.announce)
	for url in meta.announce_list:
		print("  tracker:    ", url)
	print("length:       ", meta.length)
	print("piece length: ", meta.piece_length)
	print("pieces:       ", len(meta.piece_hashes))
	if meta.comment is not None:
		print("comment:      ", meta.comment)
	if meta.created_by is not None:
		print("created by:   ", meta.created_by)
	if meta.creation_date is not None:
		print("created:      ", meta.creation_date.isoformat())
	print("files:")
	for f in meta.files:
		print(f"  {'/'.join(f.path)} ({f.length} bytes @ {f.start})")


def build_parser() -> ArgumentParser:
	ap = ArgumentParser(prog="torrentmeta", description="inspect bencoded torrent metainfo")
	ap.add_argument("--debug", action="store_true", help="enable verbose logging")
	ap.add_argument("--timeout", type=float, default=source.DEFAULT_TIMEOUT, help="timeout for fetching URLs, in seconds")
	sub = ap.add_subparsers(dest="command", required=True)

	info = sub.add_parser("info", help="summarise a .torrent file")
	info.add_argument("source", help="path or URL of the .torrent")

	dump = sub.add_parser("dump", help="print any bencoded file as a tree")
	dump.add_argument("source", help="path or URL of the bencoded data")

	verify = sub.add_parser("verify", help="check local data against the piece hashes")
	verify.add_argument("source", help="path or URL of the .torrent")
	verify.add_argument("root", help="directory holding the downloaded data")
	verify.add_argument("--progress", action="store_true", default=sys.stderr.isatty(), help="show a progress bar")
	verify.add_argument("--no-progress", dest="progress", action="store_false")
	return ap


def main(argv: Optional[List[str]] = None) -> int:
	args = build_parser().parse_args(argv)
	logging.basicConfig(
		level=logging.DEBUG if args.debug else logging.WARNING,
		format="%(levelname)s %(name)s: %(message)s",
	)

	try:
		data = asyncio.run(source.read(args.source, timeout=args.timeout))
		if args.command == "dump":
			print(bencode.decode(data))
			return 0

		meta = TorrentDescriptor.from_bencoded(data)
		if args.command == "info":
			print_info(meta)
			return 0

		saved = verify_pieces(meta, args.root, progress=args.progress)
	except TorrentMetaError as e:
		print(f"error: {e}", file=sys.stderr)
		return 1

	print(f"{saved.num_set_bits}/{saved.length} pieces ok ({saved.num_set_bits/saved.length*100:.2f}%)")
	missing = saved.missing()
	if missing:
		print("bad pieces:", " ".join(map(str, missing)))
	return 0 if saved.complete else 1


if __name__ == "__main__":
	sys.exit(main())
