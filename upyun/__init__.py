from .auth import Credentials, Signer
from .client import ED_AUTO, ED_CNC, ED_CTT, ED_TELECOM, UpYun
from .config import Config, load_config
from .errors import AmbiguousCursorError, ResponseError, UploadSessionError, UpYunError
from .fileinfo import FileInfo
from .fragment import FragmentFile
from .listing import ListingStream, ListTraverser
from .retry import RetryPolicy
from .uploader import RequestSpec, ResumableUploader

__version__ = "0.1.0"

__all__ = [
    "AmbiguousCursorError",
    "Config",
    "Credentials",
    "ED_AUTO",
    "ED_CNC",
    "ED_CTT",
    "ED_TELECOM",
    "FileInfo",
    "FragmentFile",
    "ListTraverser",
    "ListingStream",
    "RequestSpec",
    "ResponseError",
    "ResumableUploader",
    "RetryPolicy",
    "Signer",
    "UpYun",
    "UpYunError",
    "UploadSessionError",
    "load_config",
]
