"""Versioned crisis keyword catalog.

The catalog is loaded once at process start and is read-only afterwards;
scanners on every request thread share the same instance by reference.
A catalog that fails validation must stop the process: an empty category
silently disables part of crisis detection.
"""
import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Tuple, Union

from eunoia.shared.models import CrisisCategory
from .config import CATALOG_VERSION, CRISIS_PHRASES

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Crisis catalog is invalid. Fatal at startup, never caught."""
    pass


class KeywordCatalog:
    """Immutable mapping of crisis category to lowercase phrases."""

    def __init__(
        self,
        phrases: Mapping[Union[CrisisCategory, str], Iterable[str]],
        version: str = CATALOG_VERSION,
    ):
        """Build and validate a catalog.

        Args:
            phrases: Category (enum or its string value) to phrase iterable
            version: Catalog version recorded in scan results

        Raises:
            ConfigurationError: Unknown or empty category, or a blank phrase
        """
        table: Dict[CrisisCategory, FrozenSet[str]] = {}
        for raw_category, raw_phrases in phrases.items():
            category = self._coerce_category(raw_category)
            if isinstance(raw_phrases, str):
                raise ConfigurationError(
                    f"Phrases for {category.value} must be a collection, not a string"
                )
            cleaned = set()
            for phrase in raw_phrases:
                if not isinstance(phrase, str) or not phrase.strip():
                    raise ConfigurationError(
                        f"Empty or non-string phrase in category {category.value}"
                    )
                cleaned.add(phrase.strip().lower())
            if not cleaned:
                raise ConfigurationError(f"Category {category.value} has no phrases")
            table[category] = frozenset(cleaned | table.get(category, frozenset()))

        if not table:
            raise ConfigurationError("Catalog has no categories")

        # Enum order, so scans walk categories deterministically
        ordered = {c: table[c] for c in CrisisCategory if c in table}
        self._table = MappingProxyType(ordered)
        self._sorted_phrases: Tuple[Tuple[CrisisCategory, Tuple[str, ...]], ...] = tuple(
            (category, tuple(sorted(category_phrases)))
            for category, category_phrases in ordered.items()
        )
        self.version = version

        logger.info(
            "KEYWORD_CATALOG_LOADED",
            extra={
                "catalog_version": version,
                "category_count": len(ordered),
                "phrase_count": sum(len(p) for p in ordered.values()),
            }
        )

    @staticmethod
    def _coerce_category(raw: Union[CrisisCategory, str]) -> CrisisCategory:
        try:
            return CrisisCategory(raw)
        except ValueError:
            raise ConfigurationError(f"Unknown crisis category: {raw!r}") from None

    @classmethod
    def default(cls) -> "KeywordCatalog":
        """The built-in catalog."""
        return cls(CRISIS_PHRASES, version=CATALOG_VERSION)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "KeywordCatalog":
        """Load a catalog resource.

        Expected shape:
            {"version": "2026.10.01",
             "categories": {"self_harm": ["cut myself", ...], ...}}

        Raises:
            ConfigurationError: File missing, unparseable, or invalid
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            logger.critical(
                "KEYWORD_CATALOG_LOAD_FAILED",
                extra={"path": str(path), "error": str(e)}
            )
            raise ConfigurationError(f"Cannot read catalog {path}: {e}") from e

        if not isinstance(document, dict) or not isinstance(document.get("categories"), dict):
            raise ConfigurationError(f"Catalog {path} must contain a 'categories' object")

        return cls(document["categories"], version=str(document.get("version", "custom")))

    def lookup(self) -> Mapping[CrisisCategory, FrozenSet[str]]:
        """Read-only view of category to phrase set."""
        return self._table

    def iter_sorted(self) -> Tuple[Tuple[CrisisCategory, Tuple[str, ...]], ...]:
        """Categories in enum order with their phrases sorted."""
        return self._sorted_phrases

    @property
    def categories(self) -> Tuple[CrisisCategory, ...]:
        return tuple(self._table.keys())

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"KeywordCatalog(version={self.version!r}, categories={len(self)})"
