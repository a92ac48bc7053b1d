"""
Main CLI application using Typer.
"""

import asyncio
import random
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..adapters import ConfigUserDirectory, build_authenticator, build_calendar_client
from ..adapters.calcom_client import CalcomClient
from ..config import AppConfig, get_default_config_path
from ..domain.candidates import DAYPARTS
from ..domain.exceptions import CalConnectError
from ..domain.models import SearchConstraints, TimeWindow, TravelBuffer, weekday_index
from ..domain.prompt_parser import build_response_message, format_slot_label
from ..domain.templates import EVENT_TEMPLATES, get_event_template, get_event_template_by_intent
from ..log import setup_logging
from ..services.availability import AvailabilityService

app = typer.Typer(
    name="calconnect",
    help="Find meeting times two people can both make, using Cal.com calendars",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
MockOption = Annotated[
    bool,
    typer.Option("--mock", help="Use the bundled mock calendars instead of Cal.com."),
]


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    try:
        return AppConfig.load_from_yaml(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _build_service(config: AppConfig, mock: bool) -> AvailabilityService:
    if mock:
        console.print("[yellow]⚠  MOCK MODE: using test calendars[/yellow]\n")

    return AvailabilityService(
        build_calendar_client(config, use_mock=mock),
        ConfigUserDirectory(config),
        default_timezone=config.timezone,
        horizon_days=config.search.horizon_days,
        slot_interval_minutes=config.search.slot_interval_minutes,
        max_results=config.search.max_results,
    )


def _parse_window(value: Optional[str]) -> Optional[TimeWindow]:
    if value is None:
        return None
    try:
        return TimeWindow.from_range(value)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _parse_date(value: Optional[str], tz: str) -> Optional[pendulum.Date]:
    if value is None:
        return None
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError as e:
        console.print(f"[bold red]Error parsing date '{value}':[/bold red] {e}")
        raise typer.Exit(1)


@app.callback()
def main(
    log_level: Annotated[str, typer.Option("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)")] = "WARNING",
):
    """
    calconnect - mutual availability for coffee, lunch, dinner and calls.
    """
    setup_logging(log_level)


@app.command()
def suggest(
    user1: Annotated[str, typer.Argument(help="Organizer (user id or email)")],
    user2: Annotated[str, typer.Argument(help="Invitee (user id or email)")],
    intent: Annotated[str, typer.Option("--intent", "-i", help="coffee, lunch, dinner or quick-call")] = "coffee",
    template_id: Annotated[Optional[str], typer.Option("--template", "-t", help="Event template id (overrides --intent)")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Meeting duration in minutes")] = None,
    window: Annotated[Optional[str], typer.Option("--window", "-w", help="Time window, e.g. 11:00-14:00")] = None,
    weekends: Annotated[bool, typer.Option("--weekends", help="Allow Saturdays and Sundays.")] = False,
    seed: Annotated[Optional[int], typer.Option("--seed", help="Seed for the venue pick")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Suggest the next slot for an intent or event template.

    Examples:

        calconnect suggest alice bob --intent lunch
        calconnect suggest alice bob --template video-60 --mock
    """
    config = _load_config(config_file)

    template = get_event_template(template_id) if template_id else get_event_template_by_intent(intent)
    if template is None:
        console.print(f"[bold red]Error:[/bold red] unknown template or intent '{template_id or intent}'")
        raise typer.Exit(1)

    service = _build_service(config, mock)

    try:
        suggestion = asyncio.run(
            service.suggest_slot(
                user1_id=user1,
                user2_id=user2,
                template=template,
                duration_minutes=duration,
                time_window=_parse_window(window),
                allow_weekends=weekends,
                rng=random.Random(seed) if seed is not None else None,
            )
        )
    except CalConnectError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if suggestion is None:
        console.print(f"[yellow]⚠ No slot available for {template.title.lower()} in the next {config.search.horizon_days} days.[/yellow]")
        return

    tz = service.user_timezone(user1)
    body = f"[bold]{template.title}[/bold] ({template.id})\n\n{suggestion.slot.in_timezone(tz).format_display()}"
    if suggestion.location:
        body += f"\n[bold]Location:[/bold] {suggestion.location}"

    console.print(Panel.fit(body, title="✓ Suggestion"))


@app.command()
def find(
    user1: Annotated[str, typer.Argument(help="Organizer (user id or email)")],
    user2: Annotated[str, typer.Argument(help="Invitee (user id or email)")],
    duration: Annotated[int, typer.Option("--duration", "-d", help="Meeting duration in minutes")] = 60,
    start: Annotated[Optional[str], typer.Option("--start", help="Start date (YYYY-MM-DD)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="End date (YYYY-MM-DD)")] = None,
    window: Annotated[Optional[str], typer.Option("--window", "-w", help="Time window, e.g. 09:00-12:00")] = None,
    daypart: Annotated[Optional[str], typer.Option("--daypart", help="morning, afternoon or evening")] = None,
    avoid: Annotated[Optional[List[str]], typer.Option("--avoid", help="Weekday to skip (repeatable)")] = None,
    buffer_before: Annotated[int, typer.Option("--buffer-before", help="Travel minutes before the meeting")] = 0,
    buffer_after: Annotated[int, typer.Option("--buffer-after", help="Travel minutes after the meeting")] = 0,
    weekends: Annotated[bool, typer.Option("--weekends", help="Allow Saturdays and Sundays.")] = False,
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", help="Maximum number of slots")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List mutual free slots, at most one per day.

    Examples:

        calconnect find alice bob --duration 30 --daypart morning
        calconnect find alice bob --start 2024-01-15 --end 2024-01-19 --avoid friday
    """
    config = _load_config(config_file)

    if daypart is not None and daypart.lower() not in DAYPARTS:
        console.print(f"[bold red]Error:[/bold red] unknown daypart '{daypart}'")
        raise typer.Exit(1)

    try:
        avoid_days = sorted({weekday_index(day) for day in avoid or []})
        travel_buffer = TravelBuffer(buffer_before, buffer_after) if buffer_before or buffer_after else None
        constraints = SearchConstraints(
            duration_minutes=duration,
            travel_buffer=travel_buffer,
            time_window=_parse_window(window),
            preferred_time=daypart,
            avoid_days=avoid_days,
            start_date=_parse_date(start, config.timezone),
            end_date=_parse_date(end, config.timezone),
            allow_weekends=weekends,
            respect_working_hours=travel_buffer is None,
        )
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    service = _build_service(config, mock)

    try:
        slots = asyncio.run(
            service.find_common_times(
                user1_id=user1,
                user2_id=user2,
                constraints=constraints,
                limit=limit,
            )
        )
        tz = service.user_timezone(user1)
    except CalConnectError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print()
    if not slots:
        console.print(
            "[yellow]⚠ No mutual slots found.[/yellow]\n"
            "Try a longer date range, a wider window or a shorter duration."
        )
        return

    console.print(f"[bold green]✓ {len(slots)} mutual slot(s) found ({tz}):[/bold green]\n")
    for slot in slots:
        console.print(f"  {slot.in_timezone(tz).format_display()}")
    console.print()


@app.command()
def ask(
    user1: Annotated[str, typer.Argument(help="Organizer (user id or email)")],
    user2: Annotated[str, typer.Argument(help="Invitee (user id or email)")],
    prompt: Annotated[str, typer.Argument(help="What you are looking for, in plain words")],
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Find slots from a free-text request.

    Example:

        calconnect ask alice bob "coffee next week in the morning, avoid friday"
    """
    config = _load_config(config_file)
    service = _build_service(config, mock)

    try:
        constraints, slots = asyncio.run(
            service.find_times_for_prompt(user1_id=user1, user2_id=user2, prompt=prompt)
        )
    except CalConnectError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"\n{build_response_message(slots, constraints)}")
    for slot in slots:
        console.print(f"  • {format_slot_label(slot)}")
    console.print()


@app.command()
def list_users(config_file: ConfigOption = None):
    """
    List all configured users.
    """
    config = _load_config(config_file)
    users = ConfigUserDirectory(config).list_users()

    if not users:
        console.print("[yellow]No users defined in the config file.[/yellow]")
        return

    table = Table(
        title="Configured users",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Id", style="bold yellow", no_wrap=True)
    table.add_column("Name")
    table.add_column("E-Mail", style="dim")
    table.add_column("Timezone")
    table.add_column("Working days")

    for user in users:
        working_days = ", ".join(
            day[:3].capitalize() for day, hours in user.working_hours.items() if hours.enabled
        )
        table.add_row(
            user.id,
            user.display_name(),
            user.email,
            user.timezone or f"{config.timezone} (default)",
            working_days or "-",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def templates():
    """
    Show the available event templates.
    """
    table = Table(
        title="Event templates",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Id", style="bold yellow", no_wrap=True)
    table.add_column("Title")
    table.add_column("Type")
    table.add_column("Duration")
    table.add_column("Window")
    table.add_column("Travel buffer")

    for template in EVENT_TEMPLATES:
        buffer = template.travel_buffer
        table.add_row(
            template.id,
            template.title,
            template.event_type.value,
            f"{template.duration} min",
            str(template.preferred_time_window or "-"),
            f"{buffer.before_minutes}/{buffer.after_minutes} min" if buffer else "-",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", help="Interface to bind")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Port to listen on")] = 8000,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Run the HTTP API.
    """
    import uvicorn

    from ..api.app import create_app

    config = _load_config(config_file)
    setup_logging(config.log_level)

    api = create_app(config, use_mock=mock)
    uvicorn.run(api, host=host, port=port, log_level=config.log_level.lower())


@app.command()
def refresh_token(
    token: Annotated[str, typer.Argument(help="Cal.com refresh token")],
    config_file: ConfigOption = None,
):
    """
    Exchange a Cal.com refresh token for a new access token.
    """
    config = _load_config(config_file)
    authenticator = build_authenticator(config)

    try:
        tokens = authenticator.refresh_access_token(token)
    except CalConnectError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}\n")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold green]✓ Token refreshed[/bold green]\n\n"
        f"[bold]Access token:[/bold] {tokens['access_token']}\n"
        f"[bold]Refresh token:[/bold] {tokens['refresh_token']}\n"
        f"[bold]Expires in:[/bold] {tokens['expires_in'] or 'N/A'} s",
        title="Cal.com"
    ))


@app.command()
def check(config_file: ConfigOption = None):
    """
    Test the Cal.com API key.
    """
    config = _load_config(config_file)

    client = CalcomClient(
        api_key=config.calcom.api_key,
        api_url=config.calcom.api_url,
        timeout=config.calcom.timeout_seconds,
    )

    try:
        profile = client.test_connection()
    except CalConnectError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}\n")
        raise typer.Exit(1)

    user_info = profile.get("user", profile)
    console.print(Panel.fit(
        f"[bold green]✓ Connection successful![/bold green]\n\n"
        f"[bold]User:[/bold] {user_info.get('name') or user_info.get('username', 'N/A')}\n"
        f"[bold]E-Mail:[/bold] {user_info.get('email', 'N/A')}",
        title="✓ Connection test"
    ))
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]calconnect[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
