import pytest

from torrentmeta.errors import UnsafePath
from torrentmeta.metainfo import build_torrent_descriptor
from torrentmeta.verify import verify_pieces

from benc import piece_hashes, single_file_info, torrent

DATA = b"hello world!"


def single(piece_length=5):
	info = single_file_info(
		name="hello.txt",
		length=len(DATA),
		pieces=piece_hashes(DATA, piece_length),
		**{"piece length": piece_length},
	)
	return build_torrent_descriptor(torrent(info))


def multi(name="dir", paths=(["a.txt"], ["sub", "b.txt"])):
	# a.txt holds the first 7 bytes, sub/b.txt the remaining 5
	info = single_file_info(
		name=name,
		length=None,
		files=[
			{"length": 7, "path": paths[0]},
			{"length": 5, "path": paths[1]},
		],
		pieces=piece_hashes(DATA, 4),
		**{"piece length": 4},
	)
	return build_torrent_descriptor(torrent(info))


def test_single_file_complete(tmp_path):
	(tmp_path / "hello.txt").write_bytes(DATA)
	saved = verify_pieces(single(), tmp_path)
	assert saved.complete
	assert saved.length == 3


def test_single_file_corrupt_piece(tmp_path):
	(tmp_path / "hello.txt").write_bytes(b"hello WORLD!")
	assert verify_pieces(single(), tmp_path).missing() == [1, 2]


def test_single_file_missing(tmp_path):
	assert verify_pieces(single(), tmp_path).num_set_bits == 0


def test_short_file(tmp_path):
	(tmp_path / "hello.txt").write_bytes(DATA[:7])
	assert verify_pieces(single(), tmp_path).missing() == [1, 2]


def test_multi_file_across_boundaries(tmp_path):
	meta = multi()
	(tmp_path / "dir" / "sub").mkdir(parents=True)
	(tmp_path / "dir" / "a.txt").write_bytes(DATA[:7])
	(tmp_path / "dir" / "sub" / "b.txt").write_bytes(DATA[7:])
	assert verify_pieces(meta, tmp_path, progress=True).complete

	# piece 1 (bytes 4-8) straddles both files
	(tmp_path / "dir" / "sub" / "b.txt").unlink()
	assert verify_pieces(meta, tmp_path).missing() == [1, 2]


@pytest.mark.parametrize("paths", [
	(["..", "a.txt"], ["b.txt"]),
	(["a.txt"], ["/etc/passwd"]),
	(["a.txt"], ["sub/b.txt"]),
	(["a.txt"], []),
])
def test_unsafe_paths(tmp_path, paths):
	with pytest.raises(UnsafePath):
		verify_pieces(multi(name=None, paths=paths), tmp_path)
