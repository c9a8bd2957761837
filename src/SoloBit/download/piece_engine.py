from ..errors import ProtocolViolation, VerificationFailure
from ..peer.message_types import MessageId, Piece
from .data_structures import DownloadingPiece

from hashlib import sha1
from typing import Union
import logging

logger = logging.getLogger(__name__)


async def download_piece(index: int, length: int, channel, expected_hash: bytes,
                         timeout: Union[float, None] = None) -> bytes:
    """
    downloads a single piece from a prepared (unchoked) channel and verifies it
    :param index: piece index
    :param length: length of this piece
    :param channel: PeerChannel, or anything with send_message(), wait_for() and abort()
    :param expected_hash: sha-1 hash of the piece from the torrent file
    :param timeout: deadline for each block to arrive, None waits forever
    :return: the verified piece data
    """
    if len(expected_hash) != 20:
        raise ValueError(f"expected hash must be 20 bytes, got {len(expected_hash)}")

    piece = DownloadingPiece(index, length)

    # every request goes out at once, no pipeline limit
    while (block := piece.get_next_request()) is not None:
        await channel.send_message(MessageId.REQUEST, block.as_request().payload())
    logger.debug(f"piece {index}: requested {len(piece.blocks)} blocks ({length} bytes)")

    while not piece.is_completed:
        payload = await channel.wait_for(MessageId.PIECE, timeout)
        try:
            msg = Piece.decode(payload)
            block = piece.add_block(msg.piece_index, msg.begin, msg.data)
        except ProtocolViolation as e:
            logger.warning(f"piece {index}: rejected block: {e}")
            # the stream is out of sync from here on
            channel.abort()
            raise
        logger.debug(f"piece {index}: got block {block!r}")

    data = piece.get_data
    digest = sha1(data).digest()
    if digest != expected_hash:
        logger.warning(f"piece {index} failed verification, got hash {digest.hex()}")
        raise VerificationFailure(index, expected_hash, digest)

    logger.info(f"piece {index} verified ({length} bytes)")
    return data
