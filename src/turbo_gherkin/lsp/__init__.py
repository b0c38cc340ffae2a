"""
Turbo-Gherkin Language Server Protocol implementation.

Provides IDE features for Turbo-Gherkin feature files:
- Diagnostics and quick fixes
- Completion
- Hover documentation
- Folding ranges
- Document links
- Semantic tokens
"""

from .server import start_server

__all__ = ["start_server"]
