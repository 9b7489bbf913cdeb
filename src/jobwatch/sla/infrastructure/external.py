"""
SLA External Service Integrations
==================================

External services around the escalation engine:
- YAML config file watcher (hot reload)
- Slack webhook relay for committed notifications
"""

import asyncio
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

import httpx
import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from jobwatch.config import NotificationType
from jobwatch.core import ConfigurationException
from jobwatch.notifications.domain import Notification
from jobwatch.shared.infrastructure.logging import get_logger
from jobwatch.sla.application.services import ISLAConfigProvider
from jobwatch.sla.domain import SLAConfig

logger = get_logger(__name__)

ConfigListener = Callable[[SLAConfig], None]


class ConfigFileHandler(FileSystemEventHandler):
    """Reloads the SLA config when its file is written, replaced or renamed into place."""

    def __init__(self, config_manager: "SLAConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def _matches(self, path: str) -> bool:
        return Path(path).resolve() == self.config_path.resolve()

    def on_modified(self, event):
        if event.is_directory:
            return
        if self._matches(event.src_path):
            logger.info("Config file changed", extra={"path": str(event.src_path)})
            self.config_manager.reload()

    def on_created(self, event):
        self.on_modified(event)

    def on_moved(self, event):
        # Editors that save via rename
        if not event.is_directory and self._matches(event.dest_path):
            logger.info("Config file replaced", extra={"path": str(event.dest_path)})
            self.config_manager.reload()


class SLAConfigManager(ISLAConfigProvider):
    """
    Holds the active SLAConfig and swaps it when the YAML file changes.

    A watchdog observer triggers the reload, so edits apply
    without a restart. Listeners are called from the watcher
    thread after every successful reload; an invalid file keeps the
    previous configuration.
    """

    def __init__(self):
        self._config: Optional[SLAConfig] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None
        self._listeners: List[ConfigListener] = []

    def load(self, path: Path) -> SLAConfig:
        """
        Initial configuration load.

        Raises:
            ConfigurationException: the file exists but is not valid
        """
        self._path = Path(path)
        config = self._load_from_file(self._path)
        with self._lock:
            self._config = config
        return config

    def _load_from_file(self, path: Path) -> SLAConfig:
        if not path.exists():
            logger.warning("SLA config file not found, using defaults", extra={"path": str(path)})
            return SLAConfig()

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            return SLAConfig(**data)
        except (yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigurationException(
                f"Invalid SLA configuration in {path}",
                details={"error": str(e)}
            ) from e

    def reload(self) -> bool:
        """Re-read the file; on failure the previous config stays in place."""
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except ConfigurationException as e:
            logger.error("Failed to reload SLA config", extra={"error": e.details.get("error")})
            return False

        with self._lock:
            self._config = new_config
        logger.info("SLA config reloaded", extra={"path": str(self._path)})

        for listener in list(self._listeners):
            try:
                listener(new_config)
            except Exception:
                logger.exception("SLA config listener failed")
        return True

    def add_listener(self, listener: ConfigListener) -> None:
        self._listeners.append(listener)

    def start_watching(self) -> None:
        """
        Watch the loaded file for changes.

        Skips watching if the file doesn't exist or the platform has no
        usable file-change notification.
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                "Config file doesn't exist, skipping file watch",
                extra={"path": str(self._path)}
            )
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(handler, str(self._path.parent), recursive=False)
            self._observer.start()
            logger.info("Started watching config file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, using static config", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        """Stop the watchdog observer, if any."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    @property
    def config(self) -> SLAConfig:
        """Current SLA config; raises until load() has run."""
        with self._lock:
            if self._config is None:
                raise RuntimeError("SLA configuration not loaded")
            return self._config

    def get_config(self) -> SLAConfig:
        return self.config


class CircuitState:
    """Webhook circuit states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for the outbound webhook.

    States:
    - CLOSED: deliveries go out
    - OPEN: failure_threshold failed deliveries in a row; nothing is sent for recovery_timeout seconds
    - HALF_OPEN: the next delivery is a probe; failing it reopens the circuit
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        monotonic: Callable[[], float] = time.monotonic
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._monotonic = monotonic
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if self._monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = self._monotonic()

        if self._failure_count >= self.failure_threshold or self._state == CircuitState.HALF_OPEN:
            self._state = CircuitState.OPEN
            logger.warning(
                "Slack relay circuit opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class SlackNotifier:
    """
    Relays committed notifications to a Slack webhook.

    Handles delivery with:
    - Circuit breaker to stop hammering a dead webhook
    - Retries with exponential backoff
    - A per-request timeout

    Delivery failures are logged and reported as False, never raised.
    """

    def __init__(
        self,
        webhook_url: Optional[str],
        channel: str,
        timeout_seconds: float = 5.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        backoff_base: float = 1.0
    ):
        self.webhook_url = webhook_url
        self.channel = channel
        self.timeout_seconds = timeout_seconds
        self._circuit_breaker = circuit_breaker or CircuitBreaker()
        self._http_client = http_client
        self._backoff_base = backoff_base
        self._pending: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._http_client

    def build_message(self, notification: Notification) -> Dict[str, Any]:
        """Block Kit payload for one notification."""
        if notification.type == NotificationType.SLA_BREACH:
            header_text = ":rotating_light: SLA Breach"
        else:
            header_text = ":alarm_clock: Reminder Overdue"

        fields = [
            {"type": "mrkdwn", "text": f"*{notification.title}*\n{notification.message}"},
        ]
        if notification.related_id:
            related_type = notification.related_type.value if notification.related_type else "item"
            fields.append({
                "type": "mrkdwn",
                "text": f"*{related_type.title()}:*\n{notification.related_id}"
            })

        return {
            "channel": self.channel,
            "text": f"{notification.title}: {notification.message}",
            "blocks": [
                {"type": "header", "text": {"type": "plain_text", "text": header_text, "emoji": True}},
                {"type": "section", "fields": fields},
                {
                    "type": "context",
                    "elements": [
                        {"type": "mrkdwn", "text": f"Raised: {notification.timestamp.isoformat()}"}
                    ]
                },
            ],
        }

    async def send(self, notification: Notification, max_retries: int = 3) -> bool:
        """
        Send one notification.

        Returns:
            True once Slack accepted the message
        """
        if not self.enabled:
            logger.debug("No Slack webhook configured")
            return False

        if not self._circuit_breaker.allow_request():
            logger.warning(
                "Slack relay circuit open, notification not sent",
                extra={"notification_id": notification.id}
            )
            return False

        message = self.build_message(notification)

        for attempt in range(max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self.webhook_url, json=message)

                if response.status_code == 200:
                    self._circuit_breaker.record_success()
                    logger.info(
                        "Notification relayed to Slack",
                        extra={"notification_id": notification.id, "type": notification.type.value}
                    )
                    return True

                logger.warning(
                    "Slack webhook rejected notification",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )
            except httpx.HTTPError as e:
                logger.error(
                    "Slack delivery attempt failed",
                    extra={"error": str(e), "attempt": attempt + 1, "notification_id": notification.id}
                )

            if attempt < max_retries - 1:
                await asyncio.sleep(self._backoff_base * (2 ** attempt))

        self._circuit_breaker.record_failure()
        return False

    async def relay(self, notifications: Sequence[Notification]) -> int:
        """Send a batch; returns how many were delivered."""
        if not self.enabled or not notifications:
            return 0
        delivered = 0
        for notification in notifications:
            if await self.send(notification):
                delivered += 1
        return delivered

    def dispatch(self, notifications: Sequence[Notification]) -> Optional[asyncio.Task]:
        """
        Relay a batch in the background.

        The caller does not wait on Slack; the task is kept until it finishes
        and its outcome is logged.
        """
        if not self.enabled or not notifications:
            return None
        task = asyncio.create_task(self.relay(list(notifications)))
        self._pending.add(task)
        task.add_done_callback(self._relay_done)
        return task

    def _relay_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("Slack relay cancelled")
        elif task.exception() is not None:
            logger.error("Slack relay failed", extra={"error": str(task.exception())})
        else:
            logger.debug("Slack relay finished", extra={"delivered": task.result()})

    async def flush(self, timeout: Optional[float] = None) -> None:
        """Wait for background relays; whatever is still running after timeout is cancelled."""
        if not self._pending:
            return
        _, still_running = await asyncio.wait(set(self._pending), timeout=timeout)
        for task in still_running:
            task.cancel()
        await asyncio.gather(*still_running, return_exceptions=True)

    async def close(self) -> None:
        await self.flush(timeout=self.timeout_seconds)
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
