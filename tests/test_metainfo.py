from datetime import datetime, timezone
import hashlib

import pytest
import yarl

from torrentmeta.bencode import decode
from torrentmeta.errors import (
	DescriptorError,
	EmptyPieceList,
	InvalidURL,
	MissingRequiredField,
	NoFilesDescribed,
	TruncatedInput,
)
from torrentmeta.metainfo import (
	FileEntry,
	TorrentDescriptor,
	build_torrent_descriptor,
	build_torrent_descriptor_from_file,
	split_piece_hashes,
)

from benc import encode, single_file_info, torrent

# keys deliberately out of canonical order, hashing must not re-sort them
INFO = b"d4:name5:a.txt6:lengthi10e12:piece lengthi16384e6:pieces20:AAAAAAAAAAAAAAAAAAAAe"
INFO_SHA1 = "a7159219d07c510626ac290684af5ed09d11dd37"
MINIMAL = b"d8:announce31:http://tracker.example/announce4:info" + INFO + b"e"


def test_minimal_single_file():
	meta = build_torrent_descriptor(MINIMAL)
	assert meta.content_hash == INFO_SHA1
	assert meta.info_hash == bytes.fromhex(INFO_SHA1)
	assert meta.name == "a.txt"
	assert meta.announce == yarl.URL("http://tracker.example/announce")
	assert meta.announce_list == (meta.announce,)
	assert meta.files == (FileEntry(("a.txt",), 10, 0),)
	assert meta.length == 10
	assert meta.piece_length == 16384
	assert meta.piece_hashes == ("41" * 20,)
	assert meta.comment is None and meta.created_by is None and meta.creation_date is None
	assert not meta.is_multi_file


def test_content_hash_covers_source_bytes():
	data = torrent()
	info = decode(data)["info"]
	assert build_torrent_descriptor(data).content_hash == hashlib.sha1(info.span).hexdigest()
	assert info.span == encode(single_file_info())


def test_piece_hashes_drop_partial_chunk():
	pieces = bytes(range(45))
	meta = build_torrent_descriptor(torrent(single_file_info(pieces=pieces)))
	assert len(meta.piece_hashes) == len(pieces) // 20
	assert meta.piece_hashes == (pieces[:20].hex(), pieces[20:40].hex())


def test_split_piece_hashes():
	assert split_piece_hashes(b"") == ()
	assert split_piece_hashes(b"x" * 19) == ()
	assert split_piece_hashes(b"x" * 60) == (b"x".hex() * 20,) * 3


@pytest.mark.parametrize("pieces", [b"", b"x" * 19])
def test_empty_piece_list(pieces):
	with pytest.raises(EmptyPieceList):
		build_torrent_descriptor(torrent(single_file_info(pieces=pieces)))


@pytest.mark.parametrize("data, field", [
	(torrent(single_file_info(pieces=None)), "pieces"),
	(torrent(single_file_info(pieces=5)), "pieces"),
	(torrent(single_file_info(**{"piece length": None})), "piece length"),
	(torrent(single_file_info(**{"piece length": 0})), "piece length"),
	(torrent(single_file_info(**{"piece length": -1})), "piece length"),
	(torrent(single_file_info(**{"piece length": "big"})), "piece length"),
	(torrent(announce=None), "announce"),
	(torrent(announce=7), "announce"),
	(encode({"announce": "http://tracker.example/"}), "info"),
	(encode({"announce": "http://tracker.example/", "info": ["x"]}), "info"),
	(encode(["not", "a", "dict"]), "info"),
])
def test_missing_required_field(data, field):
	with pytest.raises(MissingRequiredField) as exc:
		build_torrent_descriptor(data)
	assert exc.value.name == field
	assert isinstance(exc.value, DescriptorError)


@pytest.mark.parametrize("announce", ["not a url", "/just/a/path", b"http://\xff\xfe/"])
def test_invalid_announce(announce):
	with pytest.raises(InvalidURL):
		build_torrent_descriptor(torrent(announce=announce))


@pytest.mark.parametrize("info", [
	single_file_info(length=None),
	single_file_info(name=None),
	single_file_info(length=-5),
	single_file_info(length=None, files=[]),
	single_file_info(files=[]), # an empty list doesn't fall back to single-file
	single_file_info(length=None, files=[{"path": ["a"]}, {"length": 3}]),
])
def test_no_files(info):
	with pytest.raises(NoFilesDescribed):
		build_torrent_descriptor(torrent(info))


def test_decode_errors_propagate():
	with pytest.raises(TruncatedInput):
		build_torrent_descriptor(MINIMAL[:-10])


def test_multi_file():
	info = single_file_info(length=None, name="dir", files=[
		{"length": 3, "path": ["a", "b.txt"]},
		{"length": 0, "path": ["empty"]},
		{"path": ["no length"]},
		{"length": 7, "path": ["c", 5, "d.txt"]},
		{"length": -1, "path": ["negative"]},
		"not a dict",
		{"length": 2, "path": "not a list"},
		{"length": 5, "path": ["e"]},
	])
	meta = build_torrent_descriptor(torrent(info))
	assert meta.is_multi_file
	assert meta.name == "dir"
	assert meta.files == (
		FileEntry(("a", "b.txt"), 3, 0),
		FileEntry(("empty",), 0, 3),
		FileEntry(("c", "d.txt"), 7, 3),
		FileEntry(("e",), 5, 10),
	)
	assert meta.length == 15 == sum(f.length for f in meta.files)
	for prev, cur in zip(meta.files, meta.files[1:]):
		assert cur.start == prev.end
	assert meta.files[2].range == range(3, 10)


def test_files_list_wins_over_length():
	info = single_file_info(files=[{"length": 4, "path": ["x"]}])
	meta = build_torrent_descriptor(torrent(info))
	assert meta.files == (FileEntry(("x",), 4, 0),)


def test_announce_list_flattened():
	announce_list = [
		["http://a.example/announce", "udp://b.example:80"],
		["nonsense"],
		[["http://c.example/"]],
		5,
		b"\xff",
	]
	meta = build_torrent_descriptor(torrent(**{"announce-list": announce_list}))
	assert meta.announce_list == (
		yarl.URL("http://a.example/announce"),
		yarl.URL("udp://b.example:80"),
		yarl.URL("http://c.example/"),
	)


def test_announce_list_falls_back_to_announce():
	meta = build_torrent_descriptor(torrent(**{"announce-list": [["garbage"], []]}))
	assert meta.announce_list == (yarl.URL("http://tracker.example/announce"),)


def test_optional_fields():
	info = single_file_info(filename="a.txt", **{"created by": "mktorrent"})
	meta = build_torrent_descriptor(torrent(info, comment="hello", **{"creation date": 86400}))
	assert meta.comment == "hello"
	assert meta.filename == "a.txt"
	assert meta.created_by == "mktorrent"
	assert meta.creation_date == datetime(1970, 1, 2, tzinfo=timezone.utc)


def test_created_by_top_level():
	meta = build_torrent_descriptor(torrent(**{"created by": "qBittorrent"}))
	assert meta.created_by == "qBittorrent"


def test_absurd_creation_date_is_ignored():
	meta = build_torrent_descriptor(torrent(**{"creation date": 10**30}))
	assert meta.creation_date is None


def test_equality_is_content_hash():
	a = build_torrent_descriptor(torrent(comment="one"))
	b = build_torrent_descriptor(torrent(comment="two", announce="udp://elsewhere.example:1"))
	c = build_torrent_descriptor(torrent(single_file_info(length=11)))
	assert a == b
	assert hash(a) == hash(b)
	assert a != c
	assert len({a, b, c}) == 2
	assert a != a.content_hash


def test_tree_access():
	meta = build_torrent_descriptor(torrent(comment="hi"))
	assert meta["info"]["name"].as_text() == "a.txt"
	assert meta.get("comment").as_text() == "hi"
	assert meta.get("missing") is None
	assert [k for k, _ in meta] == ["announce", "comment", "info"]
	assert dict(meta.items())["announce"].as_text() == "http://tracker.example/announce"


def test_piece_size():
	info = single_file_info(length=25, **{"piece length": 10}, pieces=b"x" * 60)
	meta = build_torrent_descriptor(torrent(info))
	assert [meta.piece_size(i) for i in range(3)] == [10, 10, 5]
	with pytest.raises(IndexError):
		meta.piece_size(3)


def test_from_file(tmp_path):
	path = tmp_path / "a.torrent"
	path.write_bytes(MINIMAL)
	assert build_torrent_descriptor_from_file(path).content_hash == INFO_SHA1
	assert TorrentDescriptor.from_file(str(path)).content_hash == INFO_SHA1
