from .app_data import get_configuration, load_configuration
from .bencode import decode, encode
from .download import DownloadSession, download_all, download_piece
from .errors import (SoloBitError, MalformedEncoding, SchemaError, PeerConnectionError,
                     ProtocolViolation, VerificationFailure, TrackerError)
from .peer import PeerChannel, PeerAddress, MessageId
from .torrent import read_torrent, parse_torrent, Torrent
from .tracker import http_tracker_announce

__version__ = '0.1.0'

__all__ = ['get_configuration', 'load_configuration',
           'decode', 'encode',
           'DownloadSession', 'download_all', 'download_piece',
           'SoloBitError', 'MalformedEncoding', 'SchemaError', 'PeerConnectionError',
           'ProtocolViolation', 'VerificationFailure', 'TrackerError',
           'PeerChannel', 'PeerAddress', 'MessageId',
           'read_torrent', 'parse_torrent', 'Torrent',
           'http_tracker_announce']
