import json
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from listingai.errors import InvalidCredential, MissingInput

logger = logging.getLogger(__name__)

STORAGE_KEY = "gemini_api_key"

Validator = Callable[[str], Awaitable[bool]]


class CredentialStore:
    """Single API key persisted as one entry of a small JSON file."""

    def __init__(self, path: Path, key: str = STORAGE_KEY):
        self.path = Path(path).expanduser()
        self.key = key

    def _read(self) -> dict:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable credential file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    async def save(self, value: str, validator: Optional[Validator] = None) -> str:
        """Persist ``value`` after an optional remote validity check.

        Raises ``MissingInput`` for a blank value and ``InvalidCredential``
        when the validator rejects it. Nothing is written in either case.
        """
        value = (value or "").strip()
        if not value:
            raise MissingInput("credential", "Please enter a valid API key.")
        if validator is not None and not await validator(value):
            raise InvalidCredential(provider_message="Please check the key and try again.")
        data = self._read()
        data[self.key] = value
        self._write(data)
        logger.info(f"API key saved to {self.path}")
        return value

    def get(self) -> Optional[str]:
        value = self._read().get(self.key)
        if not isinstance(value, str) or not value.strip():
            return None
        return value

    def clear(self) -> None:
        data = self._read()
        if data.pop(self.key, None) is not None:
            self._write(data)
            logger.info("API key removed")

    def exists(self) -> bool:
        return bool(self.get())
