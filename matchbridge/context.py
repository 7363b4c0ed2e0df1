"""
Process-wide service context.

Built once at startup and passed explicitly to everything that talks to a
backend. It owns the PlayFab entity credential: the credential is acquired
on start() and refreshed only when a call reports it expired.
"""
import logging
import threading
from typing import Callable, Optional, TypeVar

from .errors import CredentialExpiredError
from .gameye_client import GameyeClient
from .playfab_client import PlayFabClient
from .region_mapper import RegionMapper
from .reporting import OutcomeReporter

logger = logging.getLogger(__name__)

T = TypeVar('T')


class EntityCredential:
    """Thread-safe holder for the title entity token."""

    def __init__(self, fetch: Callable[[], str]):
        self._fetch = fetch
        self._token: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def token(self) -> str:
        with self._lock:
            if self._token is None:
                self._token = self._fetch()
            return self._token

    def refresh(self, stale_token: str = None) -> str:
        """Fetch a new token unless another flow already replaced the stale one."""
        with self._lock:
            if self._token is None or stale_token is None or self._token == stale_token:
                self._token = self._fetch()
            return self._token


class ServiceContext:
    def __init__(
        self,
        settings: dict,
        playfab: PlayFabClient,
        gameye: GameyeClient,
        reporter=None,
        region_mapper: RegionMapper = None
    ):
        self.settings = settings
        self.playfab = playfab
        self.gameye = gameye
        self.reporter = reporter or OutcomeReporter()
        self.region_mapper = region_mapper or RegionMapper()
        self.credential = EntityCredential(playfab.get_entity_token)

    @classmethod
    def from_settings(cls, settings: dict, reporter=None) -> "ServiceContext":
        playfab = PlayFabClient(
            title_id=settings['PLAYFAB_TITLE_ID'],
            secret_key=settings['PLAYFAB_SECRET_KEY'],
            base_url=settings.get('PLAYFAB_URL') or None,
            timeout=settings.get('PLAYFAB_TIMEOUT', 10)
        )
        gameye = GameyeClient(
            base_url=settings['GAMEYE_URL'],
            token=settings['GAMEYE_TOKEN'],
            query_timeout=settings.get('GAMEYE_QUERY_TIMEOUT', 10)
        )
        return cls(settings, playfab, gameye, reporter=reporter)

    def start(self):
        """Acquire the entity token up front so a bad secret fails at boot."""
        self.credential.token
        logger.info(f"PlayFab entity token acquired for title {self.playfab.title_id}")

    def refresh_credentials(self, stale_token: str = None) -> str:
        logger.warning("PlayFab entity token rejected, refreshing")
        return self.credential.refresh(stale_token)

    def call_playfab(self, call: Callable[[str], T]) -> T:
        """Run a PlayFab call with the entity token, refreshing it once if expired."""
        token = self.credential.token
        try:
            return call(token)
        except CredentialExpiredError:
            token = self.refresh_credentials(token)
            return call(token)
