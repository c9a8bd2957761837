from ..errors import TrackerError
from ..torrent.torrent_object import Torrent
from .utils import AnnounceResponse, build_announce_url, parse_announce_response

from typing import Union
import asyncio
import logging
import aiohttp
from yarl import URL

logger = logging.getLogger(__name__)

USER_AGENT = 'SoloBit v0.1.0'


async def http_tracker_announce(torrent: Torrent, peer_id: bytes, port: int, timeout: Union[float, None] = None,
                                user_agent: str = USER_AGENT) -> AnnounceResponse:
    """
    asks the tracker for peers through GET, as a fresh download (nothing uploaded or downloaded yet)
    :param torrent: torrent to announce
    :param peer_id: my peer id
    :param port: tells the tracker where the client is listening
    :param timeout: total seconds for the request
    :param user_agent: http user agent
    :return: AnnounceResponse with the interval and the peers
    """
    tracker_url = build_announce_url(torrent.announce, torrent.info_hash, peer_id, port, torrent.length)
    logger.debug(f"announcing to {tracker_url}")

    headers = {
        'User-Agent': user_agent or USER_AGENT
    }

    try:
        async with aiohttp.ClientSession(headers=headers, timeout=aiohttp.ClientTimeout(total=timeout)) as session:
            # the url is already percent-encoded, the raw info hash must not be quoted twice
            async with session.get(URL(tracker_url, encoded=True)) as response:
                if response.status != 200:
                    raise TrackerError(f"Failed to connect to the tracker. HTTP Status Code: {response.status}")
                body = await response.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise TrackerError(f"could not reach the tracker {torrent.announce}: {e!r}") from e

    announce = parse_announce_response(body)
    logger.info(f"tracker returned {len(announce.peers)} peers, interval {announce.interval}s")
    return announce
