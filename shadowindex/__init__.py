"""
shadowindex - background document indexing and vector retrieval for grounding LLM answers.
"""

__version__ = "0.1.0"
__logo__ = "🗂️"
