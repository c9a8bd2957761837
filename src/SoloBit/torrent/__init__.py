from .torrent import read_torrent, parse_torrent, info_hash
from .torrent_object import Torrent

__all__ = ['read_torrent', 'parse_torrent', 'info_hash', 'Torrent']
