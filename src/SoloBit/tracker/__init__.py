from .http_tracker import http_tracker_announce
from .utils import AnnounceResponse, build_announce_url, parse_announce_response, format_compact_peers

__all__ = ['http_tracker_announce',
           'AnnounceResponse', 'build_announce_url', 'parse_announce_response', 'format_compact_peers']
