"""
Entry point for the Turbo-Gherkin LSP server.

Usage:
    python -m turbo_gherkin.lsp
"""

from .server import start_server

if __name__ == "__main__":
    start_server()
