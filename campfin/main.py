"""Main entry point for the campfin application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Annotated, Any, Coroutine, Dict, List, Optional

import typer

logger = logging.getLogger(__name__)

# --- Core Layer ---
from campfin.core.client import create_client
from campfin.core.command_handler import CommandHandler

# --- Domain Layer ---
from campfin.domain.models.common import CHAMBERS, OFFICES
from campfin.domain.models.errors import ConfigurationError

# --- Infrastructure Layer ---
# Config
from campfin.infrastructure.config.settings import load_configuration, get_config, load_client_settings
# UI
from campfin.infrastructure.cli.display import ConsoleDisplay
# Monitoring
from campfin.infrastructure.monitoring.logger_setup import setup_logging

# --- Dependency Injection Container (Manual) ---

def create_dependencies(
    api_key: Optional[str] = None,
    json_output: bool = False,
    log_level: Optional[str] = None,
) -> Dict[str, Any]:
    """Creates and wires up all dependencies for one CLI invocation.

    This acts as the Composition Root.
    """
    load_configuration()
    setup_logging(
        log_level=log_level or get_config('logging.level', 'WARNING'),
        log_format=get_config('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
        log_file=get_config('logging.file'),
    )

    dependencies: Dict[str, Any] = {}
    dependencies['ui'] = ConsoleDisplay(json_output=json_output)
    dependencies['settings'] = load_client_settings(api_key=api_key)
    dependencies['command_handler'] = CommandHandler(
        client_factory=lambda: create_client(dependencies['settings']),
        ui=dependencies['ui'],
    )
    logger.debug("Dependencies initialized.")
    return dependencies

# Filled by the callback before any command runs
_dependencies: Dict[str, Any] = {}

# --- Typer App Definition ---
app = typer.Typer(
    name="campfin",
    help="campfin: ProPublica Campaign Finance API client.",
    add_completion=False,
    no_args_is_help=True,
)

# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, bool]) -> None:
    """Runs a handler coroutine and exits with status 1 if it reports failure."""
    succeeded = asyncio.run(coro)
    if not succeeded:
        raise typer.Exit(code=1)

def _handler() -> CommandHandler:
    """The command handler, once an API key is known."""
    if not _dependencies['settings'].api_key:
        _dependencies['ui'].display_error(
            "No API key configured. Pass --api-key or set PROPUBLICA_API_KEY."
        )
        raise typer.Exit(code=1)
    return _dependencies['command_handler']

def _only_one(**options: Any) -> Optional[str]:
    """Returns the name of the single option that was given, None if none was."""
    given = [name for name, value in options.items() if value is not None]
    if len(given) > 1:
        raise typer.BadParameter(f"Options {', '.join('--' + name for name in given)} cannot be combined.")
    return given[0] if given else None

def _day(value: Optional[datetime]) -> Optional[date]:
    return value.date() if value is not None else None

# --- Shared Options ---

CycleArgument = Annotated[int, typer.Argument(help="Election cycle, e.g. 2016.")]
FecIdArgument = Annotated[str, typer.Argument(help="FEC identifier.")]
OffsetOption = Annotated[
    Optional[int],
    typer.Option("--offset", min=0, help="Skip this many results (the API pages by 20).")
]
DateOption = Annotated[
    Optional[datetime],
    typer.Option("--date", "-d", formats=["%Y-%m-%d"], help="Day to list (YYYY-MM-DD).")
]
CandidateOption = Annotated[Optional[str], typer.Option("--candidate", help="Candidate FEC ID.")]
CommitteeOption = Annotated[Optional[str], typer.Option("--committee", help="Committee FEC ID.")]

# --- CLI Commands ---

@app.command()
def candidate(cycle: CycleArgument, fec_id: FecIdArgument):
    """Show one candidate."""
    run_async(_handler().handle_one(
        f"Candidate {fec_id}", lambda client: client.get_candidate(cycle, fec_id)))

@app.command()
def candidates(
    cycle: CycleArgument,
    query: Annotated[Optional[str], typer.Option("--query", "-q", help="Name to search for.")] = None,
    offset: OffsetOption = None,
):
    """Search candidates."""
    run_async(_handler().handle_many(
        "Candidates", lambda client: client.get_candidates(cycle, query, offset=offset)))

@app.command()
def races(
    cycle: CycleArgument,
    state: Annotated[str, typer.Argument(help="Two-letter state code.")],
    chamber: Annotated[Optional[str], typer.Option("--chamber", help="house or senate.")] = None,
    district: Annotated[Optional[int], typer.Option("--district", help="House district (needs --chamber).")] = None,
    offset: OffsetOption = None,
):
    """List candidates running in a state."""
    if chamber is not None and chamber not in CHAMBERS:
        raise typer.BadParameter(f"--chamber must be one of {', '.join(CHAMBERS)}.")
    if district is not None and chamber is None:
        raise typer.BadParameter("--district requires --chamber.")
    run_async(_handler().handle_many(
        f"Candidates in {state.upper()}",
        lambda client: client.get_candidates_from_state(cycle, state.upper(), chamber, district, offset=offset)))

@app.command()
def committee(cycle: CycleArgument, fec_id: FecIdArgument):
    """Show one committee."""
    run_async(_handler().handle_one(
        f"Committee {fec_id}", lambda client: client.get_committee(cycle, fec_id)))

@app.command()
def committees(
    cycle: CycleArgument,
    query: Annotated[str, typer.Argument(help="Name to search for.")],
    offset: OffsetOption = None,
):
    """Search committees."""
    run_async(_handler().handle_many(
        "Committees", lambda client: client.get_committees(cycle, query, offset=offset)))

@app.command(name="committee-filings")
def committee_filings(cycle: CycleArgument, fec_id: FecIdArgument, offset: OffsetOption = None):
    """List a committee's filings."""
    run_async(_handler().handle_many(
        f"Filings of {fec_id}", lambda client: client.get_committee_filings(cycle, fec_id, offset=offset)))

@app.command()
def bundlers(cycle: CycleArgument, fec_id: FecIdArgument, offset: OffsetOption = None):
    """List lobbyist bundlers of a committee."""
    run_async(_handler().handle_many(
        f"Lobbyist bundlers of {fec_id}",
        lambda client: client.get_lobbyist_bundlers_by_committee(cycle, fec_id, offset=offset)))

@app.command(name="late-contributions")
def late_contributions(
    cycle: CycleArgument,
    candidate_id: CandidateOption = None,
    committee_id: CommitteeOption = None,
    day: DateOption = None,
    offset: OffsetOption = None,
):
    """List recent 48-hour (late) contributions."""
    selected = _only_one(candidate=candidate_id, committee=committee_id, date=day)
    if selected == "candidate":
        call = lambda client: client.get_recent_late_contributions_to_candidate(cycle, candidate_id, offset=offset)
    elif selected == "committee":
        call = lambda client: client.get_recent_late_contributions_to_committee(cycle, committee_id, offset=offset)
    elif selected == "date":
        call = lambda client: client.get_recent_late_contributions_by_date(cycle, _day(day), offset=offset)
    else:
        call = lambda client: client.get_recent_late_contributions(cycle, offset=offset)
    run_async(_handler().handle_many("Late contributions", call))

@app.command(name="filing-types")
def filing_types(cycle: CycleArgument):
    """List electronic filing form types."""
    run_async(_handler().handle_many(
        "Filing form types", lambda client: client.get_electronic_filing_form_types(cycle)))

@app.command()
def filings(
    cycle: CycleArgument,
    query: Annotated[Optional[str], typer.Option("--query", "-q", help="Search term.")] = None,
    day: DateOption = None,
    form_type: Annotated[Optional[str], typer.Option("--type", help="Form type, e.g. F3.")] = None,
    offset: OffsetOption = None,
):
    """Search electronic filings by term, day or form type."""
    selected = _only_one(query=query, date=day, type=form_type)
    if selected == "query":
        call = lambda client: client.get_electronic_filings(cycle, query, offset=offset)
    elif selected == "date":
        call = lambda client: client.get_electronic_filings_by_date(cycle, _day(day), offset=offset)
    elif selected == "type":
        call = lambda client: client.get_electronic_filings_by_type(cycle, form_type, offset=offset)
    else:
        raise typer.BadParameter("One of --query, --date or --type is required.")
    run_async(_handler().handle_many("Electronic filings", call))

@app.command()
def filing(cycle: CycleArgument, filing_id: Annotated[str, typer.Argument(help="Filing identifier.")]):
    """Show one (presidential) electronic filing."""
    run_async(_handler().handle_one(
        f"Filing {filing_id}", lambda client: client.get_electronic_filing(cycle, filing_id)))

@app.command(name="independent-expenditures")
def independent_expenditures(
    cycle: CycleArgument,
    day: DateOption = None,
    committee_id: CommitteeOption = None,
    candidate_id: CandidateOption = None,
    offset: OffsetOption = None,
):
    """List independent expenditures, optionally by day, committee or candidate."""
    selected = _only_one(date=day, committee=committee_id, candidate=candidate_id)
    if selected == "date":
        call = lambda client: client.get_independent_expenditures_by_date(cycle, _day(day), offset=offset)
    elif selected == "committee":
        call = lambda client: client.get_independent_expenditures_by_committee(cycle, committee_id, offset=offset)
    elif selected == "candidate":
        call = lambda client: client.get_independent_expenditures_for_candidate(cycle, candidate_id, offset=offset)
    else:
        call = lambda client: client.get_independent_expenditures(cycle, offset=offset)
    run_async(_handler().handle_many("Independent expenditures", call))

@app.command(name="race-totals")
def race_totals(
    cycle: CycleArgument,
    office: Annotated[Optional[str], typer.Option("--office", help="house, senate or president.")] = None,
    committee_id: CommitteeOption = None,
    offset: OffsetOption = None,
):
    """Independent expenditure race totals for an office or a committee."""
    if office is not None and office not in OFFICES:
        raise typer.BadParameter(f"--office must be one of {', '.join(OFFICES)}.")
    selected = _only_one(office=office, committee=committee_id)
    if selected == "office":
        call = lambda client: client.get_independent_expenditure_race_totals_for_office(cycle, office, offset=offset)
    elif selected == "committee":
        call = lambda client: client.get_independent_expenditure_race_totals_for_committee(cycle, committee_id, offset=offset)
    else:
        raise typer.BadParameter("One of --office or --committee is required.")
    run_async(_handler().handle_many("Race totals", call))

@app.command()
def electioneering(
    cycle: CycleArgument,
    committee_id: CommitteeOption = None,
    day: DateOption = None,
    offset: OffsetOption = None,
):
    """List electioneering communications, optionally by committee or day."""
    selected = _only_one(committee=committee_id, date=day)
    if selected == "committee":
        call = lambda client: client.get_electioneering_communications_by_committee(cycle, committee_id, offset=offset)
    elif selected == "date":
        call = lambda client: client.get_electioneering_communications_by_date(cycle, _day(day), offset=offset)
    else:
        call = lambda client: client.get_electioneering_communications(cycle, offset=offset)
    run_async(_handler().handle_many("Electioneering communications", call))

@app.command(name="get")
def get_path(
    path: Annotated[str, typer.Argument(help="Path relative to the API base URL, e.g. 2016/filings/types.json")],
    param: Annotated[Optional[List[str]], typer.Option("--param", "-P", help="Query parameter as key=value.")] = None,
):
    """Fetch any API path and show the whole response document."""
    query: Dict[str, str] = {}
    for item in param or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{item}'.")
        query[key] = value

    async def fetch(client):
        envelope = await client.get(path, query)
        return envelope.raw

    run_async(_handler().handle_one(path, fetch))

@app.callback()
def main_callback(
    api_key: Annotated[
        Optional[str],
        typer.Option("--api-key", envvar="PROPUBLICA_API_KEY", help="ProPublica API key (X-API-KEY).")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Print raw JSON records.")] = False,
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="debug, info, warning or error.")] = None,
):
    """Query the ProPublica Campaign Finance API."""
    _dependencies.clear()
    try:
        _dependencies.update(create_dependencies(api_key=api_key, json_output=json_output, log_level=log_level))
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        ConsoleDisplay().display_error(f"Invalid configuration: {e}")
        raise typer.Exit(code=1)

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()

if __name__ == "__main__":
    cli_entry_point()
