from ..app_data import load_configuration
from ..errors import TrackerError
from ..peer.peer_channel import PeerChannel
from ..peer.peer_object import PeerAddress
from ..torrent.torrent_object import Torrent
from ..tracker.http_tracker import http_tracker_announce
from .piece_engine import download_piece

from typing import Any, Awaitable, Callable, Dict, List, Union
import logging

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, int], None]


async def download_all(torrent: Torrent, channel, timeout: Union[float, None] = None,
                       progress: Union[ProgressCallback, None] = None) -> bytes:
    """
    downloads every piece of the torrent, in order, over one channel
    :param torrent: torrent data instance
    :param channel: prepared PeerChannel
    :param timeout: deadline for each block, None waits forever
    :param progress: called with (piece index, bytes done, total bytes) after each piece
    :return: content of the whole file
    """
    result = bytearray(torrent.length)
    offset = 0
    for index, expected_hash in enumerate(torrent.piece_hashes):
        piece_length = torrent.piece_size(index)
        if isinstance(channel, PeerChannel) and channel.has_piece(index) is False:
            logger.warning(f"{channel.address} did not announce piece {index}, requesting it anyway")

        data = await download_piece(index, piece_length, channel, expected_hash, timeout)
        result[offset: offset + piece_length] = data
        offset += piece_length

        if progress is not None:
            progress(index, offset, torrent.length)

    return bytes(result)


class DownloadSession(object):
    """
    download session instance: asks the tracker for peers, connects to the first one and downloads from it.
    """

    def __init__(self, torrent: Torrent, config: Union[Dict[str, Any], None] = None) -> None:
        """
        :param torrent: torrent data instance
        :param config: settings, see app_data/config.json. loaded from disk if not given
        :return: None
        """
        self.torrent = torrent
        self.config = config if config is not None else load_configuration()
        self.peer_id: bytes = self.config['peer_id'].encode('utf-8')
        self.peers: List[PeerAddress] = []
        self.downloaded = 0
        self.state = None

    async def get_peers(self) -> List[PeerAddress]:
        self.state = 'Announcing'
        response = await http_tracker_announce(self.torrent, self.peer_id, self.config['port'],
                                               self.config.get('tracker_timeout'), self.config.get('user_agent'))
        self.peers = response.peers
        return self.peers

    async def connect(self, address: Union[PeerAddress, None] = None) -> PeerChannel:
        """
        opens and prepares a channel, the caller owns it afterwards
        :param address: peer to connect to. the first peer from the tracker if None
        :return: unchoked PeerChannel
        """
        if address is None:
            peers = self.peers or await self.get_peers()
            if not peers:
                raise TrackerError("couldn't find any peers!")
            # all peers hold the full file, take the first one
            address = peers[0]

        self.state = 'Connecting'
        channel = await PeerChannel.open(address, self.config.get('connect_timeout'))
        try:
            await channel.prepare(self.torrent.info_hash, self.peer_id, self.config.get('handshake_timeout'))
        except BaseException:
            await channel.close()
            raise
        return channel

    async def handshake(self, address: PeerAddress) -> bytes:
        """
        handshakes with a peer and hangs up
        :return: the peer's id
        """
        async with await PeerChannel.open(address, self.config.get('connect_timeout')) as channel:
            return await channel.handshake(self.torrent.info_hash, self.peer_id, self.config.get('handshake_timeout'))

    def _report(self, index: int, done: int, total: int) -> None:
        self.downloaded = done
        logger.info(f"piece {index + 1}/{self.torrent.pieces_count} done, {done}/{total} bytes")

    async def _run(self, work: Callable[[PeerChannel], Awaitable[bytes]]) -> bytes:
        try:
            async with await self.connect() as channel:
                self.state = 'Downloading...'
                data = await work(channel)
        except BaseException:
            self.state = 'Failed'
            raise
        self.state = 'Completed'
        return data

    async def download_piece(self, index: int) -> bytes:
        """
        downloads and verifies a single piece
        :param index: piece index
        :return: piece data
        """
        piece_length = self.torrent.piece_size(index)
        expected_hash = self.torrent.piece_hashes[index]
        timeout = self.config.get('message_timeout')

        async def work(channel: PeerChannel) -> bytes:
            data = await download_piece(index, piece_length, channel, expected_hash, timeout)
            self.downloaded = len(data)
            return data

        return await self._run(work)

    async def download(self) -> bytes:
        """
        main function for downloading a torrent
        :return: content of the file
        """
        timeout = self.config.get('message_timeout')
        return await self._run(lambda channel: download_all(self.torrent, channel, timeout, self._report))
