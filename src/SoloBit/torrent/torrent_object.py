from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any


@dataclass(frozen=True)
class Torrent(object):
    """
    object to store attributes from the torrent file
    """

    announce: str  # tracker url
    name: str  # suggested file name
    length: int  # total length of the file in bytes
    piece_length: int  # length of every piece except maybe the last one
    piece_hashes: List[bytes]  # list of sha-1 hashes of all the pieces
    info_hash: bytes  # sha-1 hash of the canonically bencoded info dict
    info: Dict[bytes, Any] = field(repr=False, compare=False)  # decoded info dict

    comment: Optional[str] = None  # comment added by uploader, optional
    created_by: Optional[str] = None  # added by uploader, optional
    creation_date: Optional[int] = None  # added by uploader, optional
    announce_list: Optional[List[List[str]]] = None  # support of multiple trackers

    @property
    def pieces_count(self) -> int:
        return len(self.piece_hashes)

    @property
    def hex_info_hash(self) -> str:
        return self.info_hash.hex()

    def piece_size(self, index: int) -> int:
        """
        length of a piece, the last piece holds whatever is left
        :param index: piece index
        :return: length in bytes
        """
        if not 0 <= index < self.pieces_count:
            raise IndexError(f"piece index {index} out of range, the torrent has {self.pieces_count} pieces")
        if index == self.pieces_count - 1:
            return self.length - self.piece_length * index
        return self.piece_length

    def piece_sizes(self) -> List[int]:
        return [self.piece_size(index) for index in range(self.pieces_count)]
