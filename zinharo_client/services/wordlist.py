from __future__ import annotations

import bz2
import logging
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

DEFAULT_WORDLIST_URL = "http://downloads.skullsecurity.org/passwords/cain.txt.bz2"


class WordlistUnavailableError(RuntimeError):
    pass


async def ensure_wordlist(path: Path, url: str, *, http: httpx.AsyncClient) -> Path:
    """Return a local decompressed wordlist, downloading it only when missing.

    The bzip2 stream is decompressed into ``<path>.part`` and renamed into
    place once complete, so an interrupted download is never mistaken for a
    cached wordlist.
    """
    if path.exists():
        logger.debug("reusing cached wordlist path=%s", path)
        return path

    logger.info("downloading wordlist url=%s", url)
    partial = path.with_name(f"{path.name}.part")
    path.parent.mkdir(parents=True, exist_ok=True)
    decompressor = bz2.BZ2Decompressor()
    try:
        async with http.stream("GET", url, follow_redirects=True) as response:
            if response.status_code != 200:
                raise WordlistUnavailableError(f"wordlist download returned status={response.status_code}")
            with partial.open("wb") as handle:
                async for chunk in response.aiter_bytes():
                    handle.write(decompressor.decompress(chunk))
    except httpx.HTTPError as exc:
        partial.unlink(missing_ok=True)
        raise WordlistUnavailableError(f"could not download wordlist: {exc}") from exc
    except (OSError, ValueError, EOFError) as exc:
        partial.unlink(missing_ok=True)
        raise WordlistUnavailableError(f"could not decompress wordlist: {exc}") from exc
    except WordlistUnavailableError:
        partial.unlink(missing_ok=True)
        raise

    if not decompressor.eof:
        partial.unlink(missing_ok=True)
        raise WordlistUnavailableError("wordlist archive ended before the bzip2 stream was complete")

    partial.replace(path)
    logger.info("saved wordlist path=%s", path)
    return path
