from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator, Optional, Self, Tuple
import hashlib
import logging
import os

import yarl

from . import bencode
from . import source
from .bencode import Key, Value
from .errors import (
	EmptyPieceList,
	InvalidURL,
	MissingRequiredField,
	NoFilesDescribed,
)

logger = logging.getLogger(__name__)

PIECE_HASH_SIZE = 20 # sha1 digest


@dataclass(frozen=True)
class FileEntry:
	path: Tuple[str, ...]
	length: int
	start: int # offset of the first byte within the whole torrent

	@property
	def end(self) -> int:
		return self.start + self.length

	@property
	def range(self) -> range:
		return range(self.start, self.end)


def parse_url(text: str) -> Optional[yarl.URL]:
	"""Parse text as an absolute URL, or return None if it isn't one."""
	try:
		url = yarl.URL(text)
	except (ValueError, TypeError):
		return None
	if not url.scheme or not url.host:
		return None
	return url


def split_piece_hashes(pieces: bytes) -> Tuple[str, ...]:
	remainder = len(pieces) % PIECE_HASH_SIZE
	if remainder:
		logger.debug("ignoring %d trailing bytes of 'pieces'", remainder)
	return tuple(
		pieces[i:i+PIECE_HASH_SIZE].hex()
		for i in range(0, len(pieces) - remainder, PIECE_HASH_SIZE)
	)


def _text(value: Optional[Value]) -> Optional[str]:
	return None if value is None else value.as_text()


def _integer(value: Optional[Value]) -> Optional[int]:
	return None if value is None else value.as_integer()


def _timestamp(value: Optional[Value]) -> Optional[datetime]:
	seconds = _integer(value)
	if seconds is None:
		return None
	try:
		return datetime.fromtimestamp(seconds, tz=timezone.utc)
	except (OverflowError, OSError, ValueError):
		logger.debug("ignoring out of range 'creation date' %d", seconds)
		return None


def _flatten_urls(value: Value) -> Iterator[yarl.URL]:
	text = value.as_text()
	if text is not None:
		url = parse_url(text)
		if url is None:
			logger.debug("dropping invalid announce-list entry %r", text)
		else:
			yield url
		return
	children = value.as_list()
	if children is not None:
		for child in children:
			yield from _flatten_urls(child)


def _files(info: Value) -> Tuple[FileEntry, ...]:
	entries = info.get("files")
	if entries is not None and entries.as_list() is not None: # multi-file mode
		files = []
		offset = 0
		for index, entry in entries.items():
			path = entry.get("path")
			segments = None if path is None else path.as_list()
			length = _integer(entry.get("length"))
			if segments is None or length is None or length < 0:
				logger.debug("skipping malformed entry %d of 'files'", index)
				continue
			texts = [segment.as_text() for segment in segments]
			files.append(FileEntry(
				path=tuple(text for text in texts if text is not None),
				length=length,
				start=offset,
			))
			offset += length
		return tuple(files)

	name = _text(info.get("name"))
	length = _integer(info.get("length"))
	if name is None or length is None or length < 0:
		return ()
	return (FileEntry(path=(name,), length=length, start=0),)


@dataclass(frozen=True, eq=False)
class TorrentDescriptor:
	"""
	Typed view of a torrent metainfo dictionary.

	Two descriptors are equal when their content hashes are, whatever the
	rest of their metadata says. The decoded tree stays reachable through
	``value``, and get/[]/items()/iteration are forwarded to it.
	"""

	content_hash: str
	announce: yarl.URL
	announce_list: Tuple[yarl.URL, ...]
	files: Tuple[FileEntry, ...]
	length: int
	piece_length: int
	piece_hashes: Tuple[str, ...]
	value: Value = field(repr=False)
	name: Optional[str] = None
	filename: Optional[str] = None
	comment: Optional[str] = None
	created_by: Optional[str] = None
	creation_date: Optional[datetime] = None

	@classmethod
	def from_value(cls, value: Value) -> Self:
		info = value.get("info")
		if info is None or info.as_dict() is None:
			raise MissingRequiredField("info")
		# hash the bytes exactly as they appeared, re-encoding could differ
		content_hash = hashlib.sha1(info.span).hexdigest()

		created_by = _text(info.get("created by"))
		if created_by is None:
			created_by = _text(value.get("created by"))

		files = _files(info)
		if not files:
			raise NoFilesDescribed()

		piece_length = _integer(info.get("piece length"))
		if piece_length is None or piece_length <= 0:
			raise MissingRequiredField("piece length")
		pieces = info.get("pieces")
		pieces_raw = None if pieces is None else pieces.as_bytes()
		if pieces_raw is None:
			raise MissingRequiredField("pieces")
		piece_hashes = split_piece_hashes(pieces_raw)
		if not piece_hashes:
			raise EmptyPieceList()

		announce_value = value.get("announce")
		if announce_value is None or announce_value.as_bytes() is None:
			raise MissingRequiredField("announce")
		announce_text = announce_value.as_text()
		announce = None if announce_text is None else parse_url(announce_text)
		if announce is None:
			raise InvalidURL(announce_value.as_bytes())

		announce_list_value = value.get("announce-list")
		announce_list = () if announce_list_value is None else tuple(_flatten_urls(announce_list_value))

		descriptor = cls(
			content_hash=content_hash,
			announce=announce,
			announce_list=announce_list or (announce,),
			files=files,
			length=sum(f.length for f in files),
			piece_length=piece_length,
			piece_hashes=piece_hashes,
			value=value,
			name=_text(info.get("name")),
			filename=_text(info.get("filename")),
			comment=_text(value.get("comment")),
			created_by=created_by,
			creation_date=_timestamp(value.get("creation date")),
		)
		logger.info(
			"built descriptor %s: %d files, %d bytes, %d pieces",
			content_hash, len(files), descriptor.length, len(piece_hashes)
		)
		return descriptor

	@classmethod
	def from_bencoded(cls, data: bytes | bytearray | memoryview) -> Self:
		return cls.from_value(bencode.decode(data))

	@classmethod
	def from_file(cls, path: str | os.PathLike) -> Self:
		return cls.from_bencoded(source.read_path(path))

	@classmethod
	async def from_url(cls, url: str | yarl.URL, **kwargs) -> Self:
		return cls.from_bencoded(await source.fetch(url, **kwargs))

	@property
	def info_hash(self) -> bytes:
		return bytes.fromhex(self.content_hash)

	@property
	def is_multi_file(self) -> bool:
		files = self.value["info"].get("files")
		return files is not None and files.as_list() is not None

	def piece_size(self, index: int) -> int:
		if not 0 <= index < len(self.piece_hashes):
			raise IndexError("piece index out of range")
		# the last piece gets whatever is left over
		return max(0, min(self.piece_length, self.length - index * self.piece_length))

	def get(self, key: Key) -> Optional[Value]:
		return self.value.get(key)

	def __getitem__(self, key: Key) -> Value:
		return self.value[key]

	def items(self) -> Iterator[Tuple[Key, Value]]:
		return self.value.items()

	def __iter__(self) -> Iterator[Tuple[Key, Value]]:
		return self.value.items()

	def __eq__(self, other: object) -> bool:
		if not isinstance(other, TorrentDescriptor):
			return NotImplemented
		return self.content_hash == other.content_hash

	def __hash__(self) -> int:
		return hash(self.content_hash)


def build_torrent_descriptor(data: bytes | bytearray | memoryview) -> TorrentDescriptor:
	return TorrentDescriptor.from_bencoded(data)


def build_torrent_descriptor_from_file(path: str | os.PathLike) -> TorrentDescriptor:
	return TorrentDescriptor.from_file(path)
