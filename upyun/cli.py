# cli.py
from __future__ import annotations

from logging.config import dictConfig
from typing import List, Optional

import requests
import typer
from typing_extensions import Annotated

from .config import load_config
from .errors import UpYunError

app = typer.Typer(no_args_is_help=True)

_state = {"config": None}


def setup_logging(verbose: bool = False) -> None:
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "plain": {"format": "%(levelname)s %(name)s: %(message)s"},
            },
            "handlers": {
                "console": {"class": "logging.StreamHandler", "formatter": "plain"},
            },
            "loggers": {
                "upyun": {
                    "handlers": ["console"],
                    "level": "DEBUG" if verbose else "WARNING",
                    "propagate": False,
                }
            },
        }
    )


def raise_error(txt):
    typer.echo(typer.style("Error: " + str(txt), fg="red"), err=True)
    raise typer.Exit(1)


def get_client():
    try:
        cfg = load_config(_state["config"])
    except RuntimeError as e:
        raise_error(e)
    try:
        return cfg.client()
    except ValueError as e:
        raise_error(e)


@app.callback()
def main(
    config: Annotated[
        Optional[str], typer.Option("--config", "-c", help="Path to a JSON config file.")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log requests.")] = False,
):
    """Work with files in an UpYun bucket."""
    _state["config"] = config
    setup_logging(verbose)


@app.command()
def usage():
    """Print the bytes used by the bucket."""
    client = get_client()
    try:
        typer.echo(client.usage())
    except (UpYunError, requests.RequestException) as e:
        raise_error(e)


@app.command()
def mkdir(key: str):
    """Create a directory."""
    client = get_client()
    try:
        client.mkdir(key)
    except (UpYunError, requests.RequestException) as e:
        raise_error(e)


@app.command()
def put(
    local: Annotated[str, typer.Argument(help="Local file to upload.")],
    key: Annotated[str, typer.Argument(help="Destination path in the bucket.")],
    md5: Annotated[bool, typer.Option("--md5", help="Send Content-MD5 checksums.")] = False,
    resume: Annotated[
        bool, typer.Option("--resume", help="Upload large files part by part.")
    ] = False,
):
    """Upload a file."""
    client = get_client()
    try:
        with open(local, "rb") as f:
            if not resume:
                client.put(key, f, use_md5=md5)
            else:
                with typer.progressbar(length=1, label="Uploading") as bar:

                    def reporter(part, max_part):
                        bar.length = max_part + 1
                        bar.update(1)

                    client.resume_put(key, f, use_md5=md5, reporter=reporter)
    except (UpYunError, requests.RequestException, OSError) as e:
        raise_error(e)
    typer.echo(f"Uploaded {local} to {key}")


@app.command()
def get(key: str, local: str):
    """Download a file."""
    client = get_client()
    try:
        with open(local, "wb") as f:
            n = client.get(key, f)
    except (UpYunError, requests.RequestException, OSError) as e:
        raise_error(e)
    typer.echo(f"Downloaded {key} ({n} B)")


@app.command(name="rm")
def remove(
    key: str,
    async_: Annotated[
        bool, typer.Option("--async", help="Let the server delete in the background.")
    ] = False,
):
    """Delete a file."""
    client = get_client()
    try:
        if async_:
            client.async_delete(key)
        else:
            client.delete(key)
    except (UpYunError, requests.RequestException) as e:
        raise_error(e)


@app.command(name="ls")
def list_dir(
    key: Annotated[str, typer.Argument()] = "/",
    recursive: Annotated[bool, typer.Option("--recursive", "-r")] = False,
    asc: Annotated[bool, typer.Option("--asc", help="Oldest first.")] = False,
):
    """List a directory."""
    client = get_client()
    stream = client.get_large_list(key, asc=asc, recursive=recursive)
    try:
        for info in stream.entries():
            suffix = "/" if info.is_folder else ""
            typer.echo(f"{info.size:>12}  {info.time}  {info.name}{suffix}")
    finally:
        stream.cancel()
    for err in stream.errors():
        raise_error(err)


@app.command()
def info(key: str):
    """Show type, size and timestamp of a file."""
    client = get_client()
    try:
        fi = client.get_info(key)
    except (UpYunError, requests.RequestException) as e:
        raise_error(e)
    typer.echo(f"type: {fi.type}")
    typer.echo(f"size: {fi.size}")
    typer.echo(f"time: {fi.time}")


@app.command()
def purge(urls: List[str]):
    """Purge CDN caches for the given URLs."""
    client = get_client()
    try:
        invalid = client.purge(urls)
    except (UpYunError, requests.RequestException) as e:
        raise_error(e)
    for url in invalid:
        typer.echo(f"Rejected: {url}")

