"""Table-mode steps that run after the agent loop.

- ExtractionPipeline: Turns the conversation history into inserted rows
- EmbeddingIndexTrigger: Fills embedding columns and builds vector indices
"""

from .embedding import EmbeddingIndexTrigger
from .extraction import ExtractionPipeline

__all__ = [
    "EmbeddingIndexTrigger",
    "ExtractionPipeline",
]
