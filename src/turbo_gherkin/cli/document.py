"""
Document analysis commands: check, fold, tokens, links.

Each command loads the vocabulary (``--vocab`` or the config's
``[vocabulary] path``) and runs one engine operation over feature files.
"""

from pathlib import Path

import typer

from turbo_gherkin.core.errors import TurboGherkinError
from turbo_gherkin.core.validator import Severity

from .utils import build_service, read_document

VocabOption = typer.Option(None, "--vocab", help="Vocabulary JSON file")
ConfigOption = typer.Option(None, "--config", "-c", help="Path to turbo-gherkin.toml")


def _service(vocab: Path | None, config: Path | None):
    try:
        return build_service(vocab, config)
    except TurboGherkinError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def check_command(
    files: list[Path] = typer.Argument(..., help="Feature files to check"),
    vocab: Path | None = VocabOption,
    config: Path | None = ConfigOption,
    format: str = typer.Option("human", "--format", "-f", help="Output format: 'human' or 'vscode'"),
) -> None:
    """
    Report syntax errors in feature files.

    Exits with code 1 when any file has a problem.
    """
    service = _service(vocab, config)
    total = 0
    for path in files:
        problems = service.check_syntax(read_document(path))
        total += len(problems)
        for problem in problems:
            severity = Severity(problem.severity).name.lower()
            if format == "vscode":
                typer.echo(f"{path}:{problem.line}:{problem.start_column}: {severity}: {problem.message}")
            else:
                typer.echo(f"{path}:{problem.line}: {problem.message}")

    if format != "vscode":
        if total:
            typer.echo(f"\n{total} problem(s) found", err=True)
        else:
            typer.echo("OK: no syntax errors")
    if total:
        raise typer.Exit(code=1)


def fold_command(
    file: Path = typer.Argument(..., help="Feature file"),
    vocab: Path | None = VocabOption,
    config: Path | None = ConfigOption,
) -> None:
    """
    Print folding ranges as ``start-end kind``.
    """
    service = _service(vocab, config)
    for fold in service.provide_folding_ranges(read_document(file)):
        kind = fold.kind.value if fold.kind else "-"
        typer.echo(f"{fold.start}-{fold.end} {kind}")


def tokens_command(
    file: Path = typer.Argument(..., help="Feature file"),
    vocab: Path | None = VocabOption,
    config: Path | None = ConfigOption,
) -> None:
    """
    Print the scope tokens of every line.
    """
    service = _service(vocab, config)
    document = read_document(file)
    state = service.get_initial_state()
    for number, line in document.lines():
        result = service.tokenize(line, state)
        state = result.end_state
        parts = []
        for i, token in enumerate(result.tokens):
            end = result.tokens[i + 1].start_index if i + 1 < len(result.tokens) else len(line)
            parts.append(f"{token.scopes or '-'}:{line[token.start_index:end]!r}")
        typer.echo(f"{number:>4} {' '.join(parts)}")


def links_command(
    file: Path = typer.Argument(..., help="Feature file"),
    vocab: Path | None = VocabOption,
    config: Path | None = ConfigOption,
) -> None:
    """
    Print document links as ``line:column target [tooltip]``.
    """
    service = _service(vocab, config)
    for link in service.provide_links(read_document(file)):
        tooltip = f" ({link.tooltip})" if link.tooltip else ""
        typer.echo(f"{link.range.start_line}:{link.range.start_column} {link.url}{tooltip}")
