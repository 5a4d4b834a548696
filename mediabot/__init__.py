# mediabot/__init__.py
from .config import MediaConfig
from .models import MediaKind, MediaRequest, PlaybackState, CommandResult, QueueResult
from .downloader import YTDLFetcher, is_valid_media_url
from .vlc_link import VLCLink, PlayerSignal, QueryKind
from .player import MediaOrchestrator
from .ledger import TokenLedger
from .status import fmt_time
