from .data_structures import Block, DownloadingPiece, block_count
from .piece_engine import download_piece
from .download_session_object import DownloadSession, download_all

__all__ = ['Block', 'DownloadingPiece', 'block_count',
           'download_piece',
           'DownloadSession', 'download_all']
