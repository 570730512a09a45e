from typing import Optional
import logging
import os

import aiohttp
import yarl

from .errors import SourceUnavailable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30 # seconds, for the whole request
URL_SCHEMES = ("http", "https", "file")


def read_path(path: str | os.PathLike) -> bytes:
	try:
		with open(path, "rb") as f:
			data = f.read()
	except OSError as e:
		raise SourceUnavailable(path, e.strerror or str(e)) from e
	logger.debug("read %d bytes from %s", len(data), path)
	return data


def looks_like_url(location: str | os.PathLike) -> bool:
	if not isinstance(location, str):
		return False
	scheme, sep, _ = location.partition("://")
	return bool(sep) and scheme.lower() in URL_SCHEMES


async def fetch(url: str | yarl.URL, session: Optional[aiohttp.ClientSession] = None, timeout: float = DEFAULT_TIMEOUT) -> bytes:
	"""
	Read the whole resource at url.

	file:// URLs are read from disk, http(s):// with aiohttp. If a session
	is passed in it is used as-is and left open.
	"""
	url = yarl.URL(url)
	if url.scheme == "file":
		return read_path(url.path)
	if url.scheme not in ("http", "https"):
		raise SourceUnavailable(url, f"unsupported scheme {url.scheme!r}")

	if session is None:
		async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session:
			return await _get(session, url)
	return await _get(session, url)


async def _get(session: aiohttp.ClientSession, url: yarl.URL) -> bytes:
	try:
		async with session.get(url) as resp:
			if not resp.ok:
				raise SourceUnavailable(url, f"http error {resp.status}")
			data = await resp.read()
	except aiohttp.ClientError as e:
		raise SourceUnavailable(url, str(e)) from e
	except TimeoutError as e:
		raise SourceUnavailable(url, "timed out") from e
	logger.debug("fetched %d bytes from %s", len(data), url)
	return data


async def read(location: str | os.PathLike, **kwargs) -> bytes:
	if looks_like_url(location):
		return await fetch(location, **kwargs)
	return read_path(location)
