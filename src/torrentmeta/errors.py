from typing import Optional


class TorrentMetaError(ValueError):
	pass


class DecodeError(TorrentMetaError):
	def __init__(self, message: str, offset: Optional[int] = None) -> None:
		if offset is not None:
			message = f"{message} (at offset {offset})"
		super().__init__(message)
		self.offset = offset


class TruncatedInput(DecodeError):
	pass


class InvalidIntegerLiteral(DecodeError):
	pass


class InvalidLengthPrefix(DecodeError):
	pass


class UnterminatedContainer(DecodeError):
	pass


# an "e" where a value was required
class UnexpectedTerminator(DecodeError):
	pass


# lists/dicts nested deeper than the interpreter can recurse
class NestingTooDeep(DecodeError):
	pass


class DescriptorError(TorrentMetaError):
	pass


class MissingRequiredField(DescriptorError):
	def __init__(self, name: str) -> None:
		super().__init__(f"missing or invalid required field {name!r}")
		self.name = name


class InvalidURL(DescriptorError):
	def __init__(self, url: object) -> None:
		super().__init__(f"invalid url: {url!r}")
		self.url = url


class EmptyPieceList(DescriptorError):
	def __init__(self) -> None:
		super().__init__("'pieces' does not hold a single complete hash")


class NoFilesDescribed(DescriptorError):
	def __init__(self) -> None:
		super().__init__("no files could be determined from 'info'")


class SourceUnavailable(TorrentMetaError):
	def __init__(self, location: object, reason: str) -> None:
		super().__init__(f"could not read {location}: {reason}")
		self.location = location
		self.reason = reason


class UnsafePath(TorrentMetaError):
	def __init__(self, path: object) -> None:
		super().__init__(f"refusing to use path {path!r}")
		self.path = path
