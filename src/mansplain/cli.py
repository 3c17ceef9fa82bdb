from __future__ import annotations
import logging
from pathlib import Path
from importlib.metadata import version as pkg_version, PackageNotFoundError
from typing import Optional

import typer
from dotenv import find_dotenv, load_dotenv

from .bootstrap import build_app, resolve_settings
from .core.errors import MansplainError

# .env must be loaded before typer reads the MANSPLAIN_* variables
load_dotenv(find_dotenv(usecwd=True))

app = typer.Typer(add_completion=False)


def _version_callback(value: bool) -> None:
    if value:
        try:
            typer.echo(f"mansplain {pkg_version('mansplain')}")
        except PackageNotFoundError:
            typer.echo("mansplain (not installed)")
        raise typer.Exit()


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="[%(levelname)s] %(message)s",
        force=True,
    )
    # httpx/httpcore are chatty at DEBUG
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _fail(exc: MansplainError) -> None:
    typer.echo(f"mansplain: error while {exc.stage}: {exc}", err=True)
    raise typer.Exit(code=1)


@app.command()
def mansplain(
    command: str = typer.Argument(..., help="The command to mansplain"),
    section: Optional[str] = typer.Argument(None, help="Optional man section (e.g. 1, 2, 3)"),
    provider: Optional[str] = typer.Option(
        None, "--provider", envvar="MANSPLAIN_PROVIDER",
        help="LLM provider to use (ollama, perplexity, openai)",
    ),
    model: Optional[str] = typer.Option(None, "--model", "-m", envvar="MANSPLAIN_MODEL", help="LLM model to use"),
    api_url: Optional[str] = typer.Option(
        None, "--api-url", "-a", envvar="MANSPLAIN_API_URL",
        help="API endpoint URL (Ollama or a custom OpenAI-compatible endpoint)",
    ),
    api_key: Optional[str] = typer.Option(
        None, "--api-key", "-k", envvar="MANSPLAIN_API_KEY", help="API key (Perplexity, OpenAI, ...)",
    ),
    prompt: Optional[str] = typer.Option(
        None, "--prompt", "-p", envvar="MANSPLAIN_PROMPT",
        help="Custom system prompt (overrides the default mansplaining prompt)",
    ),
    stream: bool = typer.Option(False, "--stream", "-s", help="Use streaming output"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging (prints URLs and payloads)"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", envvar="MANSPLAIN_CONFIG", help="Optional YAML config file",
    ),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit",
    ),
):
    """A slightly condescending man page explainer."""
    _configure_logging(debug)

    try:
        settings = resolve_settings(
            config_path=config,
            provider=provider,
            model=model,
            api_url=api_url,
            api_key=api_key,
            prompt=prompt,
            stream=True if stream else None,  # runtime.stream applies when the flag is absent
            debug=debug,
        )
        ctx = build_app(settings)
    except MansplainError as e:
        _fail(e)

    provider_obj = ctx["provider"]
    session = ctx["session"]
    gen = None
    try:
        manual = ctx["source"].fetch(command, section)

        if settings.stream:
            gen = session.run_turn_stream(manual)
            for piece in gen:
                typer.echo(piece, nl=False)
            typer.echo("")
        else:
            typer.echo(session.run_turn(manual))
    except KeyboardInterrupt:
        if gen is not None:
            gen.close()
        typer.echo("\n[interrupted]", err=True)
        raise typer.Exit(code=130)
    except MansplainError as e:
        _fail(e)
    finally:
        provider_obj.close()
