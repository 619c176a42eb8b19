"""
Template resolution and source caching.

Resolution maps a (template id, optional version) pair onto concrete
source text. Sources are preloaded concurrently at startup so that the
request path never touches the filesystem. A cache miss after startup
is unexpected but recoverable: the source is loaded on demand, stored,
and a warning is logged.

Concurrency model:
- Reads never wait on each other.
- Fallback loads are serialized per key only, so a slow load for one
  template never blocks resolution of another.
- Preloading is all-or-nothing: any failed load aborts with
  PreloadFailedError.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple

import anyio

from docgen.app.errors import (
    PreloadFailedError,
    TemplateNotFoundError,
    VersionNotFoundError,
)
from docgen.app.registry.registry import (
    TemplateCatalog,
    TemplateDefinition,
    TemplateVersion,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedTemplate:
    definition: TemplateDefinition
    version: TemplateVersion
    content: str


class TemplateSourceLoader(Protocol):
    async def load(self, source_ref: str) -> str:
        ...


class FileSystemTemplateLoader:
    """
    Reads template sources from a single directory.

    Source references must stay inside the directory; anything that
    resolves elsewhere is rejected.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    async def load(self, source_ref: str) -> str:
        path = (self._root / source_ref).resolve()
        if not path.is_relative_to(self._root):
            raise ValueError(f"Template source escapes template root: {source_ref}")
        return await anyio.Path(path).read_text(encoding="utf-8")


def cache_key(template_id: str, version: str) -> str:
    return f"{template_id}:{version}"


class TemplateCache:
    def __init__(
        self,
        catalog: TemplateCatalog,
        loader: TemplateSourceLoader,
        *,
        enabled: bool = True,
    ) -> None:
        self._catalog = catalog
        self._loader = loader
        self._enabled = enabled
        self._entries: Dict[str, str] = {}
        self._key_locks: Dict[str, asyncio.Lock] = {}

    @property
    def catalog(self) -> TemplateCatalog:
        return self._catalog

    @property
    def size(self) -> int:
        return len(self._entries)

    def is_cached(self, template_id: str, version: str) -> bool:
        return cache_key(template_id, version) in self._entries

    # ------------------------------------------------------------------
    # Startup preloading
    # ------------------------------------------------------------------

    async def preload_all(self) -> int:
        """
        Load every (template, version) pair of the catalogue concurrently.

        Returns the number of cached entries. Raises PreloadFailedError
        if any single load fails; in that case nothing from this run is
        kept.
        """
        pairs: List[Tuple[TemplateDefinition, TemplateVersion]] = [
            (definition, version)
            for definition in self._catalog.list_all()
            for version in definition.versions
        ]

        logger.info("template_preload_begin", extra={"templates": len(pairs)})

        results = await asyncio.gather(
            *(self._loader.load(version.source_ref) for _, version in pairs),
            return_exceptions=True,
        )

        loaded: Dict[str, str] = {}
        failures: List[str] = []

        for (definition, version), result in zip(pairs, results):
            key = cache_key(definition.id, version.version)
            if isinstance(result, BaseException):
                logger.error(
                    "template_preload_failed",
                    exc_info=result,
                    extra={"template": key, "source_ref": version.source_ref},
                )
                failures.append(key)
            else:
                loaded[key] = result

        if failures:
            raise PreloadFailedError(failures)

        if self._enabled:
            self._entries.update(loaded)

        logger.info(
            "template_preload_complete",
            extra={"cached": self.size, "cache_enabled": self._enabled},
        )
        return self.size

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve(
        self,
        template_id: str,
        version: Optional[str] = None,
    ) -> ResolvedTemplate:
        definition = self._catalog.find(template_id)
        if definition is None:
            raise TemplateNotFoundError(template_id, self._catalog.ids)

        version_id = version if version is not None else definition.default_version
        version_def = definition.find_version(version_id)
        if version_def is None:
            raise VersionNotFoundError(
                template_id, version_id, definition.version_ids
            )

        key = cache_key(template_id, version_id)
        content = self._entries.get(key)
        if content is None:
            content = await self._load_missing(key, version_def)

        return ResolvedTemplate(
            definition=definition,
            version=version_def,
            content=content,
        )

    async def _load_missing(self, key: str, version_def: TemplateVersion) -> str:
        if not self._enabled:
            return await self._loader.load(version_def.source_ref)

        lock = self._key_locks.setdefault(key, asyncio.Lock())
        async with lock:
            # Another task may have filled the entry while we waited.
            content = self._entries.get(key)
            if content is not None:
                return content

            logger.warning(
                "Cache miss for template %s, loading from disk",
                key,
            )
            content = await self._loader.load(version_def.source_ref)
            self._entries[key] = content
            return content

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def clear(self) -> None:
        self._entries.clear()
        logger.info("template_cache_cleared")

    async def reload(self) -> int:
        """
        Drop every cached source and preload the catalogue again.
        """
        self.clear()
        return await self.preload_all()
