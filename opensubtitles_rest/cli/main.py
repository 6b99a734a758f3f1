"""Command line entry point for the OpenSubtitles REST client.

Settings (API key, base URL, user agent, timeout, token) are read from the
environment and ``.env`` via Settings. Unsuccessful API calls print one line
per classified error and exit with status 1.

Dependencies:
    - typer: Command parsing
    - opensubtitles_rest.common.display: Console output and tables
"""

import sys
from typing import Annotated

import typer
from pydantic import ValidationError

from opensubtitles_rest.client import Client
from opensubtitles_rest.common.api_exceptions import ErrorResponse
from opensubtitles_rest.common.config import ConfigError, Settings
from opensubtitles_rest.common.display import (
    create_features_table,
    create_formats_table,
    create_languages_table,
    create_subtitles_table,
    create_user_table,
    get_console,
    print_download,
    print_error_response,
)
from opensubtitles_rest.common.logging import generate_id, set_log_path, set_run_id
from opensubtitles_rest.common.models import (
    Credentials,
    FeaturesPopularParameters,
    FeaturesSearchParameters,
    SubtitlesDownloadParameters,
    SubtitlesSearchParameters,
)

app = typer.Typer(help="Query the OpenSubtitles REST API.")

TokenOption = Annotated[
    str | None,
    typer.Option("--token", envvar="OPENSUBTITLES_AUTH_TOKEN", help="Bearer token from 'login'"),
]


def load_settings() -> Settings:
    """Load settings from the environment.

    Raises:
        ConfigError: If a setting is invalid
    """
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def create_client(token: str | None = None) -> Client:
    """Build a client from settings, authenticating with ``token`` when given."""
    console = get_console()
    try:
        settings = load_settings()
    except ConfigError as e:
        console.print(f"[error]{e}[/error]")
        sys.exit(1)

    set_log_path(settings.opensubtitles_log_path)
    set_run_id(generate_id())

    client = Client.from_settings(settings)
    if token:
        client = client.with_auth_token(token)
    return client


def _fail(error: ErrorResponse) -> None:
    print_error_response(error)
    sys.exit(1)


@app.command()
def languages() -> None:
    """List subtitle languages."""
    console = get_console()
    with create_client() as client:
        try:
            result, _ = client.languages.list()
        except ErrorResponse as e:
            _fail(e)
            return
    console.print(create_languages_table((result.data or []) if result else []))


@app.command()
def formats() -> None:
    """List subtitle formats."""
    console = get_console()
    with create_client() as client:
        try:
            result, _ = client.formats.list()
        except ErrorResponse as e:
            _fail(e)
            return
    names = result.data.output_formats if result and result.data else None
    console.print(create_formats_table(names or []))


@app.command()
def features(
    query: Annotated[str, typer.Argument(help="Title to search for")],
    year: Annotated[int | None, typer.Option("--year", help="Release year")] = None,
    feature_type: Annotated[
        str | None, typer.Option("--type", help="movie, tvshow or episode")
    ] = None,
) -> None:
    """Search for features (movies, tv shows, episodes)."""
    console = get_console()
    params = FeaturesSearchParameters(query=query, year=year, type=feature_type)
    with create_client() as client:
        try:
            found, _ = client.features.search(params)
        except ErrorResponse as e:
            _fail(e)
            return
    console.print(create_features_table(found))


@app.command()
def popular(
    language: Annotated[
        list[str] | None, typer.Option("--language", "-l", help="Language code, repeatable")
    ] = None,
    feature_type: Annotated[str | None, typer.Option("--type", help="movie or tvshow")] = None,
) -> None:
    """Discover popular features of the last 30 days."""
    console = get_console()
    params = FeaturesPopularParameters(languages=language, type=feature_type)
    with create_client() as client:
        try:
            found, _ = client.features.popular(params)
        except ErrorResponse as e:
            _fail(e)
            return
    console.print(create_features_table(found))


@app.command()
def subtitles(
    query: Annotated[str | None, typer.Argument(help="Title or file name")] = None,
    imdb_id: Annotated[int | None, typer.Option("--imdb-id", help="IMDB id")] = None,
    languages: Annotated[
        str | None, typer.Option("--languages", help="Comma-separated language codes")
    ] = None,
    page: Annotated[int | None, typer.Option("--page", help="Result page")] = None,
) -> None:
    """Search for subtitles."""
    console = get_console()
    params = SubtitlesSearchParameters(
        query=query, imdb_id=imdb_id, languages=languages, page=page
    )
    with create_client() as client:
        try:
            result, _ = client.subtitles.search(params)
        except ErrorResponse as e:
            _fail(e)
            return
    if result is None:
        console.print("[warning]No subtitles found[/warning]")
        return
    console.print(create_subtitles_table(result.data or []))
    if result.total_pages:
        console.print(f"[dim]Page {result.page} of {result.total_pages}[/dim]")


@app.command()
def download(
    file_id: Annotated[int, typer.Argument(help="File id from 'subtitles'")],
    sub_format: Annotated[str | None, typer.Option("--format", help="Output format")] = None,
    token: TokenOption = None,
) -> None:
    """Request a download link for a subtitle file."""
    params = SubtitlesDownloadParameters(file_id=file_id, sub_format=sub_format)
    with create_client(token) as client:
        try:
            result, _ = client.subtitles.download(params)
        except ErrorResponse as e:
            _fail(e)
            return
    if result is not None:
        print_download(result)


@app.command()
def login(
    username: Annotated[str, typer.Argument(help="OpenSubtitles username")],
    password: Annotated[str, typer.Option("--password", prompt=True, hide_input=True)],
) -> None:
    """Log in and print a bearer token."""
    console = get_console()
    with create_client() as client:
        try:
            result, _ = client.auth.login(Credentials(username=username, password=password))
        except ErrorResponse as e:
            _fail(e)
            return
    if result is None or not result.token:
        console.print("[error]Login returned no token[/error]")
        sys.exit(1)
    console.print(result.token, markup=False, soft_wrap=True)
    console.print(f"[dim]Base URL: {result.client_base_url}[/dim]")


@app.command()
def user(token: TokenOption = None) -> None:
    """Show the authenticated user's information."""
    console = get_console()
    with create_client(token) as client:
        try:
            result, _ = client.users.get()
        except ErrorResponse as e:
            _fail(e)
            return
    if result is None or result.data is None:
        console.print("[warning]No user information returned[/warning]")
        return
    console.print(create_user_table(result.data))


if __name__ == "__main__":
    app()
