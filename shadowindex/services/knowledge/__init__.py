"""Knowledge service: documents, background indexing and retrieval in one facade."""

from shadowindex.services.knowledge.service import KnowledgeService

__all__ = ["KnowledgeService"]
