from .bencode import ByteString, Dictionary, Integer, List, Value, decode, decode_file, decode_url
from .errors import (
	DecodeError,
	DescriptorError,
	EmptyPieceList,
	InvalidIntegerLiteral,
	InvalidLengthPrefix,
	InvalidURL,
	MissingRequiredField,
	NestingTooDeep,
	NoFilesDescribed,
	SourceUnavailable,
	TorrentMetaError,
	TruncatedInput,
	UnexpectedTerminator,
	UnsafePath,
	UnterminatedContainer,
)
from .metainfo import (
	FileEntry,
	TorrentDescriptor,
	build_torrent_descriptor,
	build_torrent_descriptor_from_file,
)
