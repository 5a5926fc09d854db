"""Persistent list of transaction hashes that later runs should not offer again.

The file is plain YAML so it can be edited by hand:

    ignored_hashes:
      - hash: "0x3fe6..."
        reason: "Processed for transaction ID 1b2c... on 2025-12-10"
        added_on: "2025-12-10"
"""

import logging
from datetime import date
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from txnsync.exceptions import IgnoreListError

logger = logging.getLogger(__name__)

ROOT_KEY = "ignored_hashes"


class IgnoredHash(BaseModel):
    hash: str
    reason: str = ""
    added_on: str | None = None  # YYYY-MM-DD

    @field_validator("added_on", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and value.strip() in ("", "~", "null"):
            return None
        return value


class IgnoreList:
    """Ordered, case-insensitively deduplicated set of IgnoredHash entries."""

    def __init__(self, entries: list[IgnoredHash] | None = None) -> None:
        self._entries: list[IgnoredHash] = []
        self._keys: set[str] = set()
        for entry in entries or []:
            self._append(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, tx_hash: str) -> bool:
        return self.contains(tx_hash)

    def contains(self, tx_hash: str) -> bool:
        return tx_hash.lower() in self._keys

    def entries(self) -> list[IgnoredHash]:
        return list(self._entries)

    def add_processed(self, tx_hash: str, ledger_entry_id: str, today: date | None = None) -> bool:
        """Record that `tx_hash` settled YNAB transaction `ledger_entry_id`. No-op if already listed."""
        day = (today or date.today()).isoformat()
        return self._append(
            IgnoredHash(
                hash=tx_hash,
                reason=f"Processed for transaction ID {ledger_entry_id} on {day}",
                added_on=day,
            )
        )

    def add_ignored(self, tx_hash: str, today: date | None = None) -> bool:
        """Record that the user chose to never import `tx_hash`. No-op if already listed."""
        day = (today or date.today()).isoformat()
        return self._append(IgnoredHash(hash=tx_hash, reason=f"Marked as ignored on {day}", added_on=day))

    def _append(self, entry: IgnoredHash) -> bool:
        key = entry.hash.lower()
        if key in self._keys:
            return False
        self._keys.add(key)
        self._entries.append(entry)
        return True

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_yaml(self) -> str:
        items = [entry.model_dump(exclude_none=True) for entry in self._entries]
        return yaml.safe_dump({ROOT_KEY: items}, sort_keys=False, allow_unicode=True)

    @classmethod
    def from_yaml(cls, text: str) -> "IgnoreList":
        try:
            # Scalars stay as written, so an unquoted hex hash is not read as an integer.
            document = yaml.load(text, Loader=yaml.BaseLoader)
        except yaml.YAMLError as exc:
            raise IgnoreListError(f"failed to decode ignore list from YAML: {exc}") from exc

        if document is None:
            return cls()
        if not isinstance(document, dict):
            raise IgnoreListError("failed to decode ignore list from YAML: top level must be a mapping")

        raw_items = document.get(ROOT_KEY) or []
        if not isinstance(raw_items, list):
            raise IgnoreListError(f"failed to decode ignore list from YAML: '{ROOT_KEY}' must be a list")

        entries: list[IgnoredHash] = []
        for idx, item in enumerate(raw_items):
            if not isinstance(item, dict):
                raise IgnoreListError(f"failed to decode ignore list from YAML: entry {idx} is not a mapping")
            try:
                entries.append(IgnoredHash.model_validate(item))
            except ValidationError as exc:
                raise IgnoreListError(f"failed to decode ignore list from YAML: entry {idx}: {exc}") from exc

        return cls(entries)


class IgnoreListFile:
    """Loads and saves an IgnoreList at a fixed path. A missing file is an empty list."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> IgnoreList:
        if not self.path.exists():
            logger.debug("No ignore list at %s; starting empty", self.path)
            return IgnoreList()

        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise IgnoreListError(f"failed to read ignore list from {self.path}: {exc}") from exc

        ignore_list = IgnoreList.from_yaml(text)
        logger.info("Loaded %d entries from ignore list", len(ignore_list))
        return ignore_list

    def save(self, ignore_list: IgnoreList) -> None:
        try:
            self.path.write_text(ignore_list.to_yaml(), encoding="utf-8")
        except OSError as exc:
            raise IgnoreListError(f"failed to write ignore list to {self.path}: {exc}") from exc
        logger.debug("Wrote %d entries to ignore list %s", len(ignore_list), self.path)
