"""Service layer: indexing, retrieval and the knowledge facade."""
