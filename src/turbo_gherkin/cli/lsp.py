"""
LSP (Language Server Protocol) CLI commands.

Commands for running the Turbo-Gherkin LSP server and checking its dependencies.
"""

import typer

lsp_app = typer.Typer(
    help="Language Server Protocol (LSP) commands.",
    no_args_is_help=True,
)


@lsp_app.command("run")
def lsp_run(
    tcp: bool = typer.Option(
        False,
        "--tcp",
        help="Use TCP transport (for debugging)",
    ),
    host: str = typer.Option(
        "127.0.0.1",
        "--host",
        help="TCP host (only used with --tcp)",
    ),
    port: int = typer.Option(
        2087,
        "--port",
        help="TCP port (only used with --tcp)",
    ),
) -> None:
    """
    Start the Turbo-Gherkin LSP server.

    By default uses stdio transport for editor integration.
    Use --tcp with --host/--port for debugging with a TCP connection.
    """
    from turbo_gherkin.lsp import start_server

    if tcp:
        typer.echo(f"Starting Turbo-Gherkin LSP server on {host}:{port}...")
    try:
        start_server(tcp=tcp, host=host, port=port)
    except KeyboardInterrupt:
        typer.echo("\nLSP server stopped.")
    except OSError as e:
        typer.echo(f"Error starting LSP server: {e}", err=True)
        raise typer.Exit(code=1)


@lsp_app.command("check")
def lsp_check() -> None:
    """
    Show the versions of the LSP libraries the server runs on.
    """
    from importlib.metadata import PackageNotFoundError, version

    missing = []
    for name in ("pygls", "lsprotocol"):
        try:
            typer.echo(f"{name + ':':<14}{version(name)}")
        except PackageNotFoundError:
            missing.append(name)

    if missing:
        typer.echo(
            f"\nMissing dependencies: {', '.join(missing)}\nInstall with: pip install turbo-gherkin",
            err=True,
        )
        raise typer.Exit(code=1)

    typer.echo("\nAll LSP dependencies installed.")
