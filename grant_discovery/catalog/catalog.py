"""Administrable registry of target modules, backed by versioned store records."""

import logging
from typing import Iterable, List, Optional

from ..database import Store
from ..errors import UnknownEntityError
from ..models import Module
from ..models.opportunity import utcnow

logger = logging.getLogger(__name__)


class ModuleCatalog:
    """Read access for scoring plus out-of-band administration.

    Feature weights are otherwise written only by the learning feedback loop.
    """

    def __init__(self, store: Store):
        self.store = store

    def seed(self, modules: Iterable[Module], replace: bool = False) -> int:
        """Insert modules that are missing; with ``replace`` overwrite existing ones.

        Returns the number of modules written.
        """
        written = 0
        for module in modules:
            existing = self.store.get_module(module.module_id)
            if existing is None:
                self.store.insert_module(module)
                written += 1
            elif replace:
                self.store.replace_module(
                    module.model_copy(update={"updated_at": utcnow()}), existing.version
                )
                written += 1
        logger.info("Catalog seeded: %d module(s) written", written)
        return written

    def list_modules(self) -> List[Module]:
        return sorted(self.store.list_modules(), key=lambda m: m.module_id)

    def get(self, module_id: str) -> Optional[Module]:
        return self.store.get_module(module_id)

    def require(self, module_id: str) -> Module:
        module = self.get(module_id)
        if module is None:
            raise UnknownEntityError("Module not found", module_id=module_id)
        return module

    def put(self, module: Module) -> Module:
        """Admin write: create the module or replace its definition."""
        existing = self.store.get_module(module.module_id)
        if existing is None:
            return self.store.insert_module(module)
        return self.store.replace_module(
            module.model_copy(update={"updated_at": utcnow()}), existing.version
        )

    def search_keywords(self, per_module: int = 5, limit: int = 25) -> List[str]:
        """Top-weighted features across modules, used as source search terms."""
        keywords: List[str] = []
        for module in self.list_modules():
            for token in module.top_features(per_module):
                if token not in keywords:
                    keywords.append(token)
        return keywords[:limit]
