# backend/price_history/services/storage/__init__.py
"""
File-backed stores.

Every store takes a FileStorage rooted at the configured storage location:

    storage/
    ├── files.py              # FileStorage, safe file names
    ├── price_store.py        # prices/{symbol}.csv
    ├── corporate_actions.py  # splits/ and dividends/
    ├── metadata.py           # yahoo_metas/{symbol}.json
    └── snapshots.py          # nav/, nav_snapshots/, position_snapshots/, reports/
"""

from price_history.services.storage.corporate_actions import CorporateActionStore
from price_history.services.storage.files import FileStorage, safe_name, symbol_from_name
from price_history.services.storage.metadata import ProviderMetadataStore
from price_history.services.storage.price_store import PriceStore
from price_history.services.storage.snapshots import NavRow, SnapshotStore

__all__ = [
    "FileStorage",
    "safe_name",
    "symbol_from_name",
    "PriceStore",
    "CorporateActionStore",
    "ProviderMetadataStore",
    "SnapshotStore",
    "NavRow",
]
