# backend/price_history/services/__init__.py
"""
Service layer for price history logic.

This package contains the service layer which encapsulates business logic
separate from the API (router) layer. Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive their stores and collaborators as constructor arguments
- Are easily testable via dependency injection

Nothing is re-exported here; import from the modules directly. Low-level
utilities (date parsing) depend on the exceptions module, so this package
must stay import-free.

Architecture:
    services/
    ├── __init__.py          # This file
    ├── exceptions.py        # Domain exceptions
    ├── constants.py         # File layouts, thresholds, provider tags
    ├── symbols.py           # Portfolio ticker -> provider symbol
    ├── splits.py            # Split reconciliation
    ├── transactions.py      # Transaction input
    ├── coverage.py          # Coverage and readiness analysis
    ├── positions.py         # Position timelines, NAV and snapshots
    ├── market_data/         # Fetcher, sync orchestrator, background worker
    │   ├── base.py
    │   ├── yahoo.py
    │   ├── sync_service.py
    │   └── worker.py
    └── storage/             # File-backed stores
        ├── files.py
        ├── price_store.py
        ├── corporate_actions.py
        ├── metadata.py
        └── snapshots.py
"""
