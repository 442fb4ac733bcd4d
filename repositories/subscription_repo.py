"""
repositories/subscription_repo.py
---------------------------------
Data access layer for subscriptions.
Keeps the collection in memory, in insertion order, and mirrors it to a
JSON snapshot file after every change when a path is configured.
"""

import json
import os
from typing import Optional

from models.subscription import Subscription
from utils.logger import get_logger

logger = get_logger(__name__)


class SubscriptionRepository:
    """Repository for CRUD operations on the subscription collection."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or None
        self._items: dict[str, Subscription] = {}
        if self.path:
            self._load()

    # ── CREATE ────────────────────────────────────────────

    def add(self, sub: Subscription) -> Subscription:
        """
        Insert a new subscription.

        Raises:
            ValueError: If the id is already taken.
        """
        if sub.id in self._items:
            raise ValueError(f"Subscription {sub.id} already exists")
        self._items[sub.id] = sub
        self._save()
        logger.info(f"Added subscription '{sub.name}' #{sub.id}")
        return sub

    # ── READ ──────────────────────────────────────────────

    def get_all(self) -> list[Subscription]:
        """All subscriptions, in the order they were added."""
        return list(self._items.values())

    def get_by_id(self, sub_id: str) -> Optional[Subscription]:
        return self._items.get(sub_id)

    # ── UPDATE ────────────────────────────────────────────

    def replace(self, sub: Subscription) -> Subscription:
        """
        Store a new version of an existing subscription, keeping its position.

        Raises:
            KeyError: If the subscription does not exist.
        """
        if sub.id not in self._items:
            raise KeyError(sub.id)
        self._items[sub.id] = sub
        self._save()
        return sub

    # ── DELETE ────────────────────────────────────────────

    def delete(self, sub_id: str) -> bool:
        """Delete a subscription by id. Returns False if it did not exist."""
        deleted = self._items.pop(sub_id, None) is not None
        if deleted:
            self._save()
            logger.info(f"Deleted subscription #{sub_id}")
        return deleted

    # ── HELPERS ───────────────────────────────────────────

    def _load(self) -> None:
        if not os.path.exists(self.path):
            logger.info(f"No snapshot at {self.path}, starting empty")
            return
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        for raw in data.get("subscriptions", []):
            try:
                sub = Subscription.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Skipping unreadable subscription {raw.get('id', '?')!r} in {self.path}: {e}")
                continue
            self._items[sub.id] = sub
        logger.info(f"Loaded {len(self._items)} subscriptions from {self.path}")

    def _save(self) -> None:
        if not self.path:
            return
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(
                    {"subscriptions": [s.to_dict() for s in self._items.values()]},
                    f,
                    ensure_ascii=False,
                    indent=2,
                )
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to write snapshot {self.path}: {e}")
            raise
