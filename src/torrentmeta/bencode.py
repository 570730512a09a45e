from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple
import logging
import os
import re
import sys

from .errors import (
	InvalidIntegerLiteral,
	InvalidLengthPrefix,
	NestingTooDeep,
	TruncatedInput,
	UnexpectedTerminator,
	UnterminatedContainer,
)
from . import source

logger = logging.getLogger(__name__)

INTEGER = b"i"
LIST = b"l"
DICT = b"d"
END = b"e"
COLON = b":"

INTEGER_BODY = re.compile(rb"-?[0-9]+")

Key = str | int
PythonTypes = bytes | int | list | dict


class Value(ABC):
	"""
	A decoded bencode node.

	Every node keeps ``span``, the exact slice of the input it was parsed
	from, so that hashes can be taken over the original bytes. The ``as_*``
	projections return None for the wrong variant instead of raising.
	"""

	span: bytes

	def as_integer(self) -> Optional[int]:
		return None

	def as_bytes(self) -> Optional[bytes]:
		return None

	def as_text(self, encoding: str = "utf-8") -> Optional[str]:
		return None

	def as_list(self) -> Optional[Tuple["Value", ...]]:
		return None

	def as_dict(self) -> Optional[Mapping[str, "Value"]]:
		return None

	def get(self, key: Key) -> Optional["Value"]:
		if isinstance(key, str):
			entries = self.as_dict()
			return None if entries is None else entries.get(key)
		if isinstance(key, int) and not isinstance(key, bool):
			items = self.as_list()
			if items is None or not 0 <= key < len(items):
				return None
			return items[key]
		return None

	def __getitem__(self, key: Key) -> "Value":
		value = self.get(key)
		if value is None:
			raise (KeyError if isinstance(key, str) else IndexError)(key)
		return value

	def items(self) -> Iterator[Tuple[Key, "Value"]]:
		return iter(())

	@abstractmethod
	def to_python(self) -> PythonTypes:
		...


@dataclass(frozen=True)
class Integer(Value):
	value: int
	span: bytes

	def as_integer(self) -> Optional[int]:
		return self.value

	def to_python(self) -> int:
		return self.value

	def __str__(self) -> str:
		try:
			return str(self.value)
		except ValueError: # past the interpreter's digit limit, print the literal as written
			return self.span[1:-1].decode("ascii")


@dataclass(frozen=True)
class ByteString(Value):
	value: bytes
	span: bytes

	def as_bytes(self) -> Optional[bytes]:
		return self.value

	def as_text(self, encoding: str = "utf-8") -> Optional[str]:
		try:
			return self.value.decode(encoding)
		except UnicodeDecodeError:
			return None

	def to_python(self) -> bytes:
		return self.value

	def __str__(self) -> str:
		text = self.as_text()
		return self.value.hex() if text is None else text


@dataclass(frozen=True)
class List(Value):
	elements: Tuple[Value, ...]
	span: bytes

	def as_list(self) -> Optional[Tuple[Value, ...]]:
		return self.elements

	def items(self) -> Iterator[Tuple[Key, Value]]:
		return enumerate(self.elements)

	def to_python(self) -> list:
		return [item.to_python() for item in self.elements]

	def __iter__(self) -> Iterator[Tuple[Key, Value]]:
		return self.items()

	def __len__(self) -> int:
		return len(self.elements)

	def __hash__(self) -> int:
		return hash(self.span)

	def __str__(self) -> str:
		return "[" + ", ".join(str(item) for item in self.elements) + "]"


@dataclass(frozen=True)
class Dictionary(Value):
	entries: Mapping[str, Value]
	span: bytes

	def __post_init__(self) -> None:
		# take a private copy so nothing outside can change the entries
		object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

	def as_dict(self) -> Optional[Mapping[str, Value]]:
		return self.entries

	def items(self) -> Iterator[Tuple[Key, Value]]:
		return iter(self.entries.items())

	def to_python(self) -> dict:
		return {k: v.to_python() for k, v in self.entries.items()}

	def __iter__(self) -> Iterator[Tuple[Key, Value]]:
		return self.items()

	def __len__(self) -> int:
		return len(self.entries)

	def __hash__(self) -> int:
		return hash(self.span)

	def __str__(self) -> str:
		return "{" + ", ".join(f"{k}: {v}" for k, v in self.entries.items()) + "}"


def _digits_to_int(digits: bytes) -> int:
	"""int() of an ASCII decimal string of any length, sidestepping the interpreter's digit limit."""
	limit = sys.get_int_max_str_digits() or len(digits)
	if len(digits) <= limit:
		return int(digits)
	value = 0
	for i in range(0, len(digits), limit):
		chunk = digits[i:i+limit]
		value = value * 10**len(chunk) + int(chunk)
	return value


# Every parser works on the window data[start:end] and returns the parsed
# value along with the offset of the first byte it did not consume.

def _parse_integer(data: bytes, start: int, end: int) -> Tuple[Integer, int]:
	terminator = data.find(END, start + 1, end)
	if terminator == -1:
		raise TruncatedInput("integer has no terminating 'e'", start)
	body = data[start + 1:terminator]
	if not INTEGER_BODY.fullmatch(body):
		raise InvalidIntegerLiteral(f"bad integer literal {body!r}", start)
	if body.startswith(b"-"):
		value = -_digits_to_int(body[1:])
	else:
		value = _digits_to_int(body)
	return Integer(value, data[start:terminator + 1]), terminator + 1


def _parse_byte_string(data: bytes, start: int, end: int) -> Tuple[ByteString, int]:
	colon = data.find(COLON, start, end)
	prefix = data[start:end if colon == -1 else colon]
	if not prefix.isdigit():
		raise InvalidLengthPrefix(f"bad byte string length {prefix[:20]!r}", start)
	if colon == -1:
		raise TruncatedInput("byte string length has no ':'", start)
	value_start = colon + 1
	significant = prefix.lstrip(b"0") or b"0"
	if len(significant) > len(str(end - value_start)): # can't fit, don't bother converting
		raise TruncatedInput(f"byte string declares a {len(significant)} digit length, only {end - value_start} bytes left", start)
	length = int(significant)
	value_end = value_start + length
	if value_end > end:
		raise TruncatedInput(f"byte string declares {length} bytes, only {end - value_start} left", start)
	return ByteString(data[value_start:value_end], data[start:value_end]), value_end


def _parse_elements(data: bytes, start: int, end: int) -> Tuple[list[Value], int]:
	offset = start + 1 # skip the l/d
	elements = []
	while True:
		if offset >= end:
			raise UnterminatedContainer("container has no terminating 'e'", start)
		res = maybe_parse(data, offset, end)
		if res is None:
			return elements, offset + 1 # consume the e
		element, offset = res
		elements.append(element)


def _parse_list(data: bytes, start: int, end: int) -> Tuple[List, int]:
	elements, offset = _parse_elements(data, start, end)
	return List(tuple(elements), data[start:offset]), offset


def _parse_dictionary(data: bytes, start: int, end: int) -> Tuple[Dictionary, int]:
	elements, offset = _parse_elements(data, start, end)
	if len(elements) % 2:
		logger.debug("dictionary at offset %d: dropping unmatched trailing element", start)
	entries = {}
	pairs = iter(elements)
	for key, value in zip(pairs, pairs):
		text = key.as_text()
		if text is None:
			logger.debug("dictionary at offset %d: dropping entry with non-text key %r", start, key.span)
			continue
		entries[text] = value # last one wins
	return Dictionary(entries, data[start:offset]), offset


# returns None on encountering an e
def maybe_parse(data: bytes, start: int = 0, end: Optional[int] = None) -> Optional[Tuple[Value, int]]:
	end = len(data) if end is None else min(end, len(data))
	if start >= end:
		raise TruncatedInput("expected a value, found end of input", start)

	char = data[start:start + 1]
	if char == END: # not a real type, used to detect end of lists/dicts
		return None
	elif char == INTEGER:
		return _parse_integer(data, start, end)
	elif char == LIST:
		return _parse_list(data, start, end)
	elif char == DICT:
		return _parse_dictionary(data, start, end)
	else: # anything else has to be a length prefix
		return _parse_byte_string(data, start, end)


# like maybe_parse but it's not allowed to return None
def definitely_parse(data: bytes, start: int = 0, end: Optional[int] = None) -> Tuple[Value, int]:
	res = maybe_parse(data, start, end)
	if res is None:
		raise UnexpectedTerminator("unexpected 'e'", start)
	return res


def decode(data: bytes | bytearray | memoryview, start: int = 0, end: Optional[int] = None) -> Value:
	"""
	Decode the first value found in data[start:end].

	Bytes after that value are ignored. Raises a DecodeError subclass on
	malformed input; nothing partial is ever returned.
	"""
	try:
		value, _ = definitely_parse(bytes(data), start, end)
	except RecursionError as e:
		raise NestingTooDeep("containers nested too deeply", start) from e
	return value


def decode_file(path: str | os.PathLike) -> Value:
	return decode(source.read_path(path))


async def decode_url(url: str, **kwargs) -> Value:
	return decode(await source.fetch(url, **kwargs))
