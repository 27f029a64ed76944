"""Category to output file routing table."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping

import structlog

from ..config import RuleCategory
from ..logging_conf import get_logger
from .sink import OutputFile


class TypeRouter:
    """Read-only mapping from rule category to destination files.

    Built once before any worker starts; lookups need no locking afterwards.
    """

    def __init__(self, table: Mapping[RuleCategory, frozenset[OutputFile]]) -> None:
        self._table: Mapping[RuleCategory, frozenset[OutputFile]] = MappingProxyType(
            {category: frozenset(files) for category, files in table.items() if files}
        )

    @classmethod
    def from_outputs(
        cls,
        outputs: Mapping[OutputFile, Iterable[RuleCategory]],
        logger: structlog.BoundLogger | None = None,
    ) -> "TypeRouter":
        log = logger or get_logger("router")
        table: dict[RuleCategory, set[OutputFile]] = {}
        for output, categories in outputs.items():
            categories = list(categories)
            if not categories:
                log.warning("output_without_categories", output=output.name)
            for category in categories:
                table.setdefault(RuleCategory(category), set()).add(output)
        router = cls({category: frozenset(files) for category, files in table.items()})
        for category in router.unmapped_categories:
            log.warning("category_unmapped", category=category.value)
        return router

    def route(self, category: RuleCategory) -> frozenset[OutputFile]:
        return self._table.get(category, frozenset())

    def route_all(self, categories: Iterable[RuleCategory]) -> frozenset[OutputFile]:
        """Union of destinations for ``categories``; each file appears once."""

        destinations: set[OutputFile] = set()
        for category in categories:
            destinations.update(self.route(category))
        return frozenset(destinations)

    @property
    def mapped_categories(self) -> frozenset[RuleCategory]:
        return frozenset(self._table)

    @property
    def unmapped_categories(self) -> tuple[RuleCategory, ...]:
        return tuple(category for category in RuleCategory if category not in self._table)


__all__ = ["TypeRouter"]
