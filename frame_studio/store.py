"""
Customization Store: product id -> CustomizationRecord, persisted as JSON.

Layout on disk:

    {"product-customizations": {"state": {"customizations": {...}}, "version": 1}}

Writes are last-writer-wins with no cross-process coordination.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

from loguru import logger
from pydantic import ValidationError as ModelValidationError

from frame_studio.errors import PersistenceError
from frame_studio.models import CustomizationRecord

STORE_VERSION = 1


class CustomizationStore:
    """Durable local store of saved customizations"""

    def __init__(self, path: str, namespace: str = "product-customizations"):
        self.path = Path(path)
        self.namespace = namespace
        self._lock = threading.Lock()
        self._records: Dict[str, CustomizationRecord] = self._read_all()

    def save(self, product_id: str, record: CustomizationRecord) -> None:
        """Overwrite the record for a product."""
        with self._lock:
            records = dict(self._records)
            records[product_id] = record
            self._write_all(records)
            self._records = records
        logger.info(f"Saved customization for product {product_id}")

    def get(self, product_id: str) -> Optional[CustomizationRecord]:
        return self._records.get(product_id)

    def remove(self, product_id: str) -> None:
        with self._lock:
            if product_id not in self._records:
                return
            records = dict(self._records)
            del records[product_id]
            self._write_all(records)
            self._records = records
        logger.info(f"Removed customization for product {product_id}")

    def clear(self) -> None:
        with self._lock:
            self._write_all({})
            self._records = {}
        logger.info("Cleared all customizations")

    def all(self) -> Dict[str, CustomizationRecord]:
        return dict(self._records)

    def __contains__(self, product_id: str) -> bool:
        return product_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def _read_all(self) -> Dict[str, CustomizationRecord]:
        if not self.path.exists():
            return {}

        try:
            document = json.loads(self.path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            logger.error(f"Customization store {self.path} is unreadable, starting empty: {e}")
            return {}

        entry = document.get(self.namespace) if isinstance(document, dict) else None
        raw = {}
        if isinstance(entry, dict):
            state = entry.get('state')
            raw = state.get('customizations') if isinstance(state, dict) else None
        if not isinstance(raw, dict):
            return {}

        records = {}
        for product_id, data in raw.items():
            try:
                records[product_id] = CustomizationRecord.model_validate(data)
            except ModelValidationError as e:
                logger.warning(f"Dropping malformed customization for {product_id}: "
                               f"{e.error_count()} validation error(s)")

        logger.debug(f"Loaded {len(records)} customizations from {self.path}")
        return records

    def _write_all(self, records: Dict[str, CustomizationRecord]) -> None:
        document = self._read_document()
        document[self.namespace] = {
            'state': {
                'customizations': {pid: record.to_json_dict() for pid, record in records.items()}
            },
            'version': STORE_VERSION
        }

        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix='.customizations-', suffix='.json',
                                            dir=str(self.path.parent))
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise PersistenceError(
                f"Failed to write customization store {self.path}: {e}",
                details={'path': str(self.path), 'records': len(records)},
                suggestions=["Free up disk space", "Check that the store directory is writable"]
            )

    def _read_document(self) -> Dict:
        """Existing file contents, so other namespaces in the same file survive a write."""
        try:
            document = json.loads(self.path.read_text(encoding='utf-8'))
        except (OSError, ValueError):
            return {}
        return document if isinstance(document, dict) else {}
