from ..errors import PeerConnectionError
from .peer_object import PeerAddress

from typing import Tuple, Union
import asyncio
import logging

logger = logging.getLogger(__name__)


async def open_tcp_connection(address: PeerAddress, timeout: Union[float, None] = None) \
        -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """
    dials a peer
    :param address: (ip, port) of the peer
    :param timeout: seconds to wait for the connection, None waits as long as the os does
    :return: asyncio reader, writer
    """
    try:
        reader, writer = await asyncio.wait_for(asyncio.open_connection(*address), timeout)
    except asyncio.TimeoutError:
        raise PeerConnectionError(f"connecting to {address} timed out after {timeout}s", timeout=True) from None
    except OSError as e:
        raise PeerConnectionError(f"could not connect to {address}: {e}") from e

    logger.info(f"connected to {address}")
    return reader, writer
