from typing import Iterator, List, Tuple


class Bitmap:
	"""One bit per piece, most significant bit first (BitTorrent bitfield order)."""

	def __init__(self, length: int):
		if length < 0:
			raise ValueError("negative bitmap length")
		self.buffer = bytearray((length + 7) // 8)
		self.length = length
		self.num_set_bits = 0

	def _get_index(self, n: int) -> Tuple[int, int]:
		if not 0 <= n < self.length:
			raise IndexError("index out of range")
		byte_idx, bit_idx = divmod(n, 8)
		return byte_idx, 7 - bit_idx

	def __getitem__(self, item: int) -> bool:
		byte_idx, bit_idx = self._get_index(item)
		return bool((self.buffer[byte_idx] >> bit_idx) & 1)

	def __setitem__(self, item: int, value: bool) -> None:
		byte_idx, bit_idx = self._get_index(item)
		self.num_set_bits += int(bool(value)) - int(self[item]) # keep track of total
		val = self.buffer[byte_idx]
		self.buffer[byte_idx] = (val & ~(1 << bit_idx)) | (int(bool(value)) << bit_idx)

	def __contains__(self, item: int) -> bool:
		return 0 <= item < self.length and self[item]

	def __len__(self) -> int:
		return self.length

	def __iter__(self) -> Iterator[bool]:
		return (self[i] for i in range(self.length))

	@property
	def complete(self) -> bool:
		return self.num_set_bits == self.length

	def missing(self) -> List[int]:
		return [i for i in range(self.length) if not self[i]]
