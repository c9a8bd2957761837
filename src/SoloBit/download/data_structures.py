from ..errors import ProtocolViolation
from ..peer.message_types import BLOCK_SIZE, Request

from dataclasses import dataclass
from typing import List, Dict, Union
import math

# block states
OPEN = 0
REQUESTED = 1
FINISHED = 2


@dataclass
class Block(object):
    """
    a representation of a block - the smallest unit that is requested with a 'Request' message
    a several blocks make up a piece.
    """
    index: int
    begin: int
    length: int

    state: int = OPEN

    @property
    def end(self) -> int:
        return self.begin + self.length

    def as_request(self) -> Request:
        return Request(self.index, self.begin, self.length)

    def __repr__(self):
        return f"index: {self.index}, begin: {self.begin}, length: {self.length}"


def block_count(piece_length: int, block_size: int = BLOCK_SIZE) -> int:
    return math.ceil(piece_length / block_size)


class DownloadingPiece(object):
    """
    a downloading piece instance.
    splits the piece into Block instances and reassembles their data, in whatever order it arrives
    """

    def __init__(self, index: int, piece_length: int, block_size: int = BLOCK_SIZE) -> None:
        """
        :param index: index of the piece
        :param piece_length: length of the piece
        :param block_size: size of each 'full' block the piece should have
        :return: None
        """
        if piece_length <= 0:
            raise ValueError(f"piece length must be positive, got {piece_length}")

        self.index = index
        self.piece_length = piece_length
        self.block_size = block_size

        self.blocks: List[Block] = []
        for i in range(block_count(piece_length, block_size)):
            begin = i * block_size
            length = min(block_size, piece_length - begin)
            self.blocks.append(Block(index, begin, length))

        self._by_begin: Dict[int, Block] = {block.begin: block for block in self.blocks}
        self.buffer = bytearray(piece_length)
        self.current_block = 0

    def get_next_request(self) -> Union[Block, None]:
        """
        returns the next unpicked block, if there are any
        :return: Block | None if all blocks have been already picked
        """
        for block in self.blocks:
            if block.state == OPEN:
                block.state = REQUESTED
                return block
        return None

    def add_block(self, piece_index: int, begin: int, data: bytes) -> Block:
        """
        places a received block in the piece buffer.
        nothing is written unless the block is exactly one I requested and haven't received yet
        :param piece_index: piece index from the piece message
        :param begin: offset from the piece message
        :param data: block data
        :return: the filled Block
        """
        if piece_index != self.index:
            raise ProtocolViolation(f"received a block of piece {piece_index} while downloading piece {self.index}")

        block = self._by_begin.get(begin)
        if block is None:
            raise ProtocolViolation(f"block offset {begin} is not a block boundary of piece {self.index} "
                                    f"(length {self.piece_length})")
        if len(data) != block.length:
            raise ProtocolViolation(f"block at offset {begin} of piece {self.index} should be {block.length} bytes, "
                                    f"got {len(data)}")
        if block.state == FINISHED:
            raise ProtocolViolation(f"block at offset {begin} of piece {self.index} was received twice")
        if block.state != REQUESTED:
            raise ProtocolViolation(f"block at offset {begin} of piece {self.index} was never requested")

        self.buffer[block.begin:block.end] = data
        block.state = FINISHED
        self.current_block += 1
        return block

    @property
    def is_completed(self) -> bool:
        return self.current_block == len(self.blocks)

    @property
    def get_data(self) -> bytes:
        return bytes(self.buffer)
