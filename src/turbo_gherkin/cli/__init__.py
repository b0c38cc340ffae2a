"""
Turbo-Gherkin CLI.

- lsp.py: LSP server commands
- document.py: check/fold/tokens/links over feature files
- utils.py: Shared utilities
"""

import typer

from turbo_gherkin.cli.document import check_command, fold_command, links_command, tokens_command
from turbo_gherkin.cli.lsp import lsp_app
from turbo_gherkin.cli.utils import version_callback

app = typer.Typer(
    help="Turbo-Gherkin language engine: diagnostics, folding, tokens and links for feature files.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and environment information",
    ),
) -> None:
    """Turbo-Gherkin CLI main callback for global options."""
    pass


app.command(name="check")(check_command)
app.command(name="fold")(fold_command)
app.command(name="tokens")(tokens_command)
app.command(name="links")(links_command)
app.add_typer(lsp_app, name="lsp")


def main() -> None:
    app(standalone_mode=True)


__all__ = ["app", "main", "lsp_app"]
