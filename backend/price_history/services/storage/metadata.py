# backend/price_history/services/storage/metadata.py
"""Provider metadata blobs, stored verbatim as yahoo_metas/{symbol}.json."""

import json
import logging
from typing import Any

from price_history.services.constants import META_DIR
from price_history.services.exceptions import ParseError
from price_history.services.storage.files import FileStorage, safe_name

logger = logging.getLogger(__name__)


class ProviderMetadataStore:
    def __init__(self, storage: FileStorage) -> None:
        self.storage = storage

    @staticmethod
    def _relative_path(symbol: str) -> str:
        return f"{META_DIR}/{safe_name(symbol)}.json"

    def save(self, symbol: str, meta: dict[str, Any]) -> None:
        self.storage.write_text(self._relative_path(symbol), json.dumps(meta, indent=2))
        logger.debug(f"Saved provider metadata for {symbol}")

    def load(self, symbol: str) -> dict[str, Any] | None:
        """
        Stored metadata for a symbol, or None when nothing is stored.

        Raises:
            ParseError: If the stored file is not valid JSON
        """
        relative = self._relative_path(symbol)
        content = self.storage.read_text(relative)
        if content is None:
            return None
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ParseError(
                f"Invalid metadata JSON for '{symbol}': {e}",
                source=relative,
            ) from e
