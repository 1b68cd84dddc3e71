from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Union

from etl.timestamps import parse_iso, to_iso_z, utc_now

logger = logging.getLogger(__name__)


def _identity(value: Any) -> Any:
    return value


class TieredCache:
    """
    Read-Through-Cache für das Dashboard-Payload.

    Zwei Stufen: Speicher und eine JSON-Datei auf der Platte. Ein einziger
    Ablaufzeitpunkt (expires_at) gilt für das gesamte Payload:

        EMPTY -> POPULATED -> (Lesen nach Ablauf) -> EMPTY

    Solange now <= expires_at liefert get() dasselbe Objekt zurück.
    Parallele Loads werden über ein gemeinsames Future dedupliziert.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        clock: Optional[Callable[[], datetime]] = None,
        encode: Callable[[Any], Any] = _identity,
        decode: Callable[[Any], Any] = _identity,
    ):
        self.path = Path(path) if path is not None else None
        self._clock = clock or utc_now
        self._encode = encode
        self._decode = decode

        self._lock = threading.Lock()
        self._value: Any = None
        self._expires_at: Optional[datetime] = None
        self._pending: Optional[Future] = None

    @property
    def expires_at(self) -> Optional[datetime]:
        return self._expires_at

    def get(self) -> Any:
        with self._lock:
            return self._get_locked()

    def put(self, value: Any, expires_at: Union[str, datetime]) -> None:
        expires = parse_iso(expires_at)
        with self._lock:
            self._value = value
            self._expires_at = expires
        self._persist(value, expires)

    def clear(self) -> None:
        with self._lock:
            self._clear_locked()

    def get_or_load(self, loader: Callable[[], Tuple[Any, Union[str, datetime]]]) -> Any:
        """
        Liefert den gültigen Cache-Inhalt oder ruft loader() genau einmal auf.

        loader() gibt (value, expires_at) zurück. Ein Fehler im Loader wird an
        alle wartenden Aufrufer weitergereicht, der Cache bleibt unverändert.
        """

        with self._lock:
            cached = self._get_locked()
            if cached is not None:
                return cached

            pending = self._pending
            is_owner = pending is None
            if is_owner:
                pending = Future()
                self._pending = pending

        if not is_owner:
            return pending.result()

        try:
            value, expires_at = loader()
            self.put(value, expires_at)
        except BaseException as e:
            with self._lock:
                self._pending = None
            pending.set_exception(e)
            raise

        with self._lock:
            self._pending = None
        pending.set_result(value)
        return value

    # ---------- intern ----------

    def _get_locked(self) -> Any:
        now = self._clock()

        if self._value is not None:
            if now <= self._expires_at:
                return self._value
            logger.info("Dashboard-Cache abgelaufen (expires_at=%s)", to_iso_z(self._expires_at))
            self._clear_locked()
            return None

        restored = self._read_persisted(now)
        if restored is None:
            return None

        self._value, self._expires_at = restored
        return self._value

    def _clear_locked(self) -> None:
        self._value = None
        self._expires_at = None
        self._remove_persisted()

    def _read_persisted(self, now: datetime) -> Optional[Tuple[Any, datetime]]:
        if self.path is None or not self.path.exists():
            return None

        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
            expires = parse_iso(document["expires_at"])
            payload = document["payload"]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Cache-Datei %s unlesbar, wird verworfen: %s", self.path, e)
            self._remove_persisted()
            return None

        if now > expires:
            self._remove_persisted()
            return None

        try:
            value = self._decode(payload)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Cache-Payload in %s passt nicht zum Schema: %s", self.path, e)
            self._remove_persisted()
            return None

        logger.info("Dashboard-Daten aus %s geladen (gültig bis %s)", self.path, to_iso_z(expires))
        return value, expires

    def _persist(self, value: Any, expires: datetime) -> None:
        if self.path is None:
            return

        document = {"expires_at": to_iso_z(expires), "payload": self._encode(value)}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(document), encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Cache-Datei %s konnte nicht geschrieben werden: %s", self.path, e)

    def _remove_persisted(self) -> None:
        if self.path is None:
            return
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Cache-Datei %s konnte nicht gelöscht werden: %s", self.path, e)
