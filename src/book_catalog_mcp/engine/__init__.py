"""
Resolution engine package.

- operations: typed input contracts and the tagged operation union
- derivations: computed fields (Author.bookCount, Book.author)
- resolver: the engine that executes operations
"""

from .operations import Operation, parse_operation, validate_input
from .resolver import ResolutionEngine

__all__ = [
    "Operation",
    "ResolutionEngine",
    "parse_operation",
    "validate_input",
]
