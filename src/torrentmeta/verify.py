from typing import List, Optional
import hashlib
import logging
import os

from tqdm import tqdm

from .bitmap import Bitmap
from .errors import UnsafePath
from .metainfo import FileEntry, TorrentDescriptor

logger = logging.getLogger(__name__)


def local_path(descriptor: TorrentDescriptor, entry: FileEntry, root: str | os.PathLike) -> str:
	parts = list(entry.path)
	if descriptor.is_multi_file and descriptor.name is not None:
		parts.insert(0, descriptor.name)
	if not parts:
		raise UnsafePath(entry.path)
	for part in parts:
		if part in ("", ".", "..") or os.path.isabs(part) or os.sep in part or (os.altsep and os.altsep in part):
			raise UnsafePath(part)
	return os.path.join(root, *parts)


def read_piece(descriptor: TorrentDescriptor, paths: List[str], index: int) -> Optional[bytes]:
	"""Return the local bytes of piece index, or None if a file it spans can't be read."""
	start = index * descriptor.piece_length
	end = start + descriptor.piece_size(index)
	chunks = []
	for entry, path in zip(descriptor.files, paths):
		lo, hi = max(start, entry.start), min(end, entry.end)
		if lo >= hi:
			continue
		try:
			with open(path, "rb") as f:
				f.seek(lo - entry.start)
				chunks.append(f.read(hi - lo)) # short files just give a short read
		except OSError as e:
			logger.debug("piece %d: cannot read %s: %s", index, path, e)
			return None
	return b"".join(chunks)


def verify_pieces(descriptor: TorrentDescriptor, root: str | os.PathLike, progress: bool = False) -> Bitmap:
	paths = [local_path(descriptor, entry, root) for entry in descriptor.files]
	saved_pieces = Bitmap(len(descriptor.piece_hashes))
	pieces = tqdm(
		enumerate(descriptor.piece_hashes),
		desc="Verifying local pieces",
		total=len(descriptor.piece_hashes),
		unit="piece",
		disable=not progress,
	)
	for i, expected in pieces:
		piece = read_piece(descriptor, paths, i)
		saved_pieces[i] = piece is not None and hashlib.sha1(piece).hexdigest() == expected

	logger.info(
		"%s: %d/%d pieces verified under %s",
		descriptor.content_hash, saved_pieces.num_set_bits, saved_pieces.length, root
	)
	return saved_pieces
