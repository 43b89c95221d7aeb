"""Gem management: creation, scoping, lookup.

A Gem's system prompt is rendered once from its name and description when
it is created and stored alongside it.  Later edits to the template do not
rewrite existing Gems.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from gemshop.utils.errors import DocumentNotFoundError, GemNotFoundError

if TYPE_CHECKING:
    from gemshop.interfaces.document_store import IDocumentStore
    from gemshop.models.documents import Gem

logger = structlog.get_logger(logger_name=__name__)

_SYSTEM_PROMPT_TEMPLATE = (
    'You are an AI assistant named "{name}". '
    'Your mission is: "{description}". '
    "You must strictly adhere to the information found in the provided "
    "documents and not invent answers."
)


def build_system_prompt(name: str, description: str) -> str:
    """Render the grounding system prompt for a new Gem."""
    return _SYSTEM_PROMPT_TEMPLATE.format(name=name, description=description)


class GemService:
    """Creates Gems and manages which documents each one may read."""

    def __init__(self, document_store: IDocumentStore) -> None:
        self._store = document_store

    async def create_gem(
        self,
        name: str,
        description: str,
        document_ids: list[str] | None = None,
        rules: str | None = None,
        system_prompt: str | None = None,
        tenant_id: str | None = None,
    ) -> Gem:
        """Create a Gem scoped to *document_ids*.

        Raises
        ------
        DocumentNotFoundError
            If any id in *document_ids* is unknown.  Nothing is written.
        """
        document_ids = _dedupe(document_ids or [])
        await self._require_documents(document_ids)

        gem = await self._store.create_gem(
            name=name,
            description=description,
            system_prompt=system_prompt or build_system_prompt(name, description),
            rules=rules,
            tenant_id=tenant_id,
        )
        await self._store.link_documents_to_gem(gem.id, document_ids)
        logger.info("gem_scoped", gem_id=gem.id, documents=len(document_ids))
        return gem

    async def link_documents(self, gem_id: str, document_ids: list[str]) -> list[str]:
        """Add *document_ids* to an existing Gem's scope.

        Returns the Gem's full list of linked document ids afterwards.
        """
        await self.get_gem(gem_id)
        document_ids = _dedupe(document_ids)
        await self._require_documents(document_ids)
        await self._store.link_documents_to_gem(gem_id, document_ids)
        return await self._store.get_gem_document_ids(gem_id)

    async def get_gem(self, gem_id: str) -> Gem:
        gem = await self._store.get_gem_by_id(gem_id)
        if gem is None:
            raise GemNotFoundError(gem_id)
        return gem

    async def get_gem_document_ids(self, gem_id: str) -> list[str]:
        return await self._store.get_gem_document_ids(gem_id)

    async def list_gems(self, tenant_id: str | None = None) -> list[Gem]:
        return await self._store.list_gems(tenant_id=tenant_id)

    async def _require_documents(self, document_ids: list[str]) -> None:
        if not document_ids:
            return
        found = {doc.id for doc in await self._store.get_documents_by_ids(document_ids)}
        missing = [doc_id for doc_id in document_ids if doc_id not in found]
        if missing:
            logger.warning("gem_unknown_documents", missing=missing)
            raise DocumentNotFoundError(missing)


def _dedupe(ids: list[str]) -> list[str]:
    return list(dict.fromkeys(ids))
