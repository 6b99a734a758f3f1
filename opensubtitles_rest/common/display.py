from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from opensubtitles_rest.common.api_exceptions import ErrorResponse
from opensubtitles_rest.common.models import (
    FeatureEntity,
    Language,
    SubtitleEntity,
    SubtitlesDownloadResponse,
    User,
)

_theme = Theme(
    {
        "primary": "#5FAFD7",
        "accent": "#FFD700",
        "success": "green bold",
        "error": "red bold",
        "warning": "yellow bold",
        "info": "blue bold",
    }
)


_console: Console | None = None


def get_theme() -> Theme:
    return _theme


def get_console(force_terminal: bool | None = None) -> Console:
    global _console

    if _console is None or force_terminal is not None:
        _console = Console(
            theme=_theme,
            force_terminal=force_terminal,
            legacy_windows=False,
        )

    return _console


def _cell(value: object) -> str:
    return "" if value is None else str(value)


def create_languages_table(languages: list[Language]) -> Table:
    table = Table(title="Languages", header_style="primary")
    table.add_column("Code", style="accent")
    table.add_column("Name")
    for language in languages:
        table.add_row(_cell(language.language_code), _cell(language.language_name))
    return table


def create_formats_table(formats: list[str]) -> Table:
    table = Table(title="Formats", header_style="primary")
    table.add_column("Format", style="accent")
    for name in formats:
        table.add_row(name)
    return table


def create_features_table(features: list[FeatureEntity]) -> Table:
    table = Table(title="Features", header_style="primary")
    table.add_column("ID", style="accent", justify="right")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Year")
    table.add_column("Subtitles", justify="right")
    for entity in features:
        feature = entity.attributes
        table.add_row(
            _cell(entity.id),
            _cell(feature.feature_type if feature else entity.type),
            _cell(feature.title if feature else None),
            _cell(feature.year if feature else None),
            _cell(feature.subtitles_count if feature else None),
        )
    return table


def create_subtitles_table(subtitles: list[SubtitleEntity]) -> Table:
    """Build a table with one row per subtitle file.

    A subtitle can ship several files (one per CD); the file id is what the
    download command expects.
    """
    table = Table(title="Subtitles", header_style="primary")
    table.add_column("File ID", style="accent", justify="right")
    table.add_column("Language")
    table.add_column("Release")
    table.add_column("Downloads", justify="right")
    table.add_column("File name")
    for entity in subtitles:
        subtitle = entity.attributes
        if subtitle is None:
            continue
        for file in subtitle.files or []:
            table.add_row(
                _cell(file.file_id),
                _cell(subtitle.language),
                _cell(subtitle.release),
                _cell(subtitle.download_count),
                _cell(file.file_name),
            )
    return table


def create_user_table(user: User) -> Table:
    table = Table(title="User", header_style="primary", show_header=False)
    table.add_column("Field", style="accent")
    table.add_column("Value")
    for name, value in user.model_dump().items():
        table.add_row(name, _cell(value))
    return table


def print_download(download: SubtitlesDownloadResponse) -> None:
    console = get_console()
    console.print(f"[success]{_cell(download.file_name)}[/success]")
    console.print(_cell(download.link), soft_wrap=True)
    if download.quota is not None:
        console.print(
            f"[dim]Remaining downloads: {download.quota.remaining}"
            f" (resets in {download.quota.reset_time or 'unknown'})[/dim]"
        )


def print_error_response(error: ErrorResponse) -> None:
    """Print one line per classified error, falling back to the composite message."""
    console = get_console()
    status = error.response.status_code if error.response is not None else "?"
    console.print(f"[error]Request failed ({status})[/error]")
    if not error.errors:
        console.print(f"  {error.message}", markup=False)
        return
    for entry in error.errors:
        console.print(f"  [warning]{entry.kind}[/warning]: ", end="")
        console.print(entry.message, markup=False)
