"""Travel assistant demo modes.

Three modes over in-memory data:
- orientation: greets the traveller and routes to the other two
- book_flight: searches flights and buys tickets
- policy_qa: answers questions from a small policy knowledge base

Every render contract returns a rich renderable, so the CLI can print
presentation output as-is.
"""

import random
import string
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field
from rich.console import Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from modeflow.modes.definition import (
    ModeDefinition,
    NoArguments,
    OrdinaryTool,
    enters,
)
from modeflow.modes.messages import ConversationMessage
from modeflow.modes.registry import ModeRegistry


TRAVEL_INITIAL_MODE = "orientation"


# =============================================================================
# Data
# =============================================================================


class Flight(BaseModel):
    """A bookable flight."""

    flight_number: str
    origin: str
    destination: str
    departs_on: date
    price_usd: int


class Ticket(BaseModel):
    """A purchased ticket."""

    confirmation_code: str
    flight: Flight
    passenger_name: str


class PolicyEntry(BaseModel):
    """One entry of the policy knowledge base."""

    topic: str
    keywords: list[str]
    answer: str


FLIGHTS: list[Flight] = [
    Flight(flight_number="MF101", origin="San Francisco", destination="Honolulu",
           departs_on=date(2026, 12, 3), price_usd=389),
    Flight(flight_number="MF117", origin="Los Angeles", destination="Honolulu",
           departs_on=date(2026, 12, 4), price_usd=342),
    Flight(flight_number="MF230", origin="Seattle", destination="Maui",
           departs_on=date(2026, 12, 5), price_usd=455),
    Flight(flight_number="MF412", origin="New York", destination="London",
           departs_on=date(2026, 12, 10), price_usd=612),
    Flight(flight_number="MF508", origin="Chicago", destination="Denver",
           departs_on=date(2026, 12, 2), price_usd=149),
]

POLICIES: list[PolicyEntry] = [
    PolicyEntry(
        topic="Refunds",
        keywords=["refund", "cancel", "money back"],
        answer="Tickets are fully refundable within 24 hours of purchase. "
               "After that, cancellations receive travel credit minus a $75 fee.",
    ),
    PolicyEntry(
        topic="Baggage",
        keywords=["bag", "baggage", "luggage", "carry"],
        answer="One carry-on and one personal item are free. "
               "Checked bags are $35 each, up to 50 lb.",
    ),
    PolicyEntry(
        topic="Changes",
        keywords=["change", "reschedule", "date"],
        answer="Date changes are free up to 7 days before departure; "
               "fare differences still apply.",
    ),
    PolicyEntry(
        topic="Pets",
        keywords=["pet", "dog", "cat", "animal"],
        answer="Small pets in an approved carrier may travel in the cabin for $125 each way.",
    ),
]


# =============================================================================
# Tool arguments and handlers
# =============================================================================


class BookFlightRequest(BaseModel):
    """Entry arguments for the book_flight mode."""

    request: str = Field(description="What the traveller asked for, in their words")


class PolicyQuestion(BaseModel):
    """Entry arguments for the policy_qa mode."""

    question: str = Field(description="The traveller's policy question")


class FlightSearch(BaseModel):
    destination: str = Field(description="Destination city or island")
    origin: Optional[str] = Field(default=None, description="Departure city, if known")


class TicketPurchase(BaseModel):
    flight_number: str = Field(description="Flight number from search results")
    passenger_name: str = Field(description="Full name of the passenger")


class PolicyLookup(BaseModel):
    topic: str = Field(description="Keyword or topic to look up, e.g. 'refund'")


_DESTINATION_ALIASES = {
    "hawaii": ["honolulu", "maui"],
}


def search_flights(args: FlightSearch) -> list[Flight]:
    """Find flights whose destination (or alias) and origin match."""
    wanted = args.destination.lower()
    targets = [wanted, *_DESTINATION_ALIASES.get(wanted, [])]

    matches = [f for f in FLIGHTS if any(t in f.destination.lower() for t in targets)]
    if args.origin:
        origin = args.origin.lower()
        matches = [f for f in matches if origin in f.origin.lower()]
    return sorted(matches, key=lambda f: f.price_usd)


def buy_ticket(args: TicketPurchase) -> Ticket:
    """Purchase a ticket on a known flight."""
    flight = next(
        (f for f in FLIGHTS if f.flight_number.lower() == args.flight_number.lower()),
        None,
    )
    if flight is None:
        raise ValueError(f"No flight numbered {args.flight_number}")

    code = "".join(random.choices(string.ascii_uppercase + string.digits, k=6))
    return Ticket(confirmation_code=code, flight=flight, passenger_name=args.passenger_name)


def lookup_policy(args: PolicyLookup) -> list[PolicyEntry]:
    """Return policy entries whose topic or keywords match."""
    needle = args.topic.lower()
    return [
        p for p in POLICIES
        if needle in p.topic.lower() or any(k in needle or needle in k for k in p.keywords)
    ]


# =============================================================================
# Render contracts
# =============================================================================


def render_assistant_text(text: str) -> Panel:
    return Panel(Markdown(text), title="[bold blue]Assistant[/bold blue]", border_style="blue")


def render_booking_text(text: str) -> Panel:
    return Panel(Markdown(text), title="[bold magenta]Booking[/bold magenta]", border_style="magenta")


def render_policy_text(text: str) -> Panel:
    return Panel(Markdown(text), title="[bold cyan]Policy[/bold cyan]", border_style="cyan")


def render_flights(flights: list[Flight]) -> Panel:
    if not flights:
        return render_booking_text("No flights match that search. Try another destination?")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Flight")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Departs")
    table.add_column("Price", justify="right")
    for f in flights:
        table.add_row(f.flight_number, f.origin, f.destination, f.departs_on.isoformat(), f"${f.price_usd}")

    return Panel(
        Group(table, "[dim]Tell me which flight to book and the passenger name.[/dim]"),
        title="[bold magenta]Flights[/bold magenta]",
        border_style="magenta",
    )


def render_ticket(ticket: Ticket) -> Panel:
    f = ticket.flight
    return Panel(
        f"[bold green]Booked![/bold green] {ticket.passenger_name} on {f.flight_number}\n"
        f"{f.origin} → {f.destination}, {f.departs_on.isoformat()}\n"
        f"Confirmation: [bold]{ticket.confirmation_code}[/bold]",
        title="[bold green]Ticket[/bold green]",
        border_style="green",
    )


# =============================================================================
# Modes
# =============================================================================


def _orientation_state(_: NoArguments) -> list[ConversationMessage]:
    return [
        ConversationMessage.system(
            "You are a friendly travel assistant. Greet the traveller and find out what "
            "they need. If they want to book a flight, call book_flight with their request. "
            "If they ask about rules such as refunds, baggage, changes or pets, call "
            "policy_qa with their question. Otherwise answer briefly."
        )
    ]


def _book_flight_state(args: BookFlightRequest) -> list[ConversationMessage]:
    return [
        ConversationMessage.system(
            "You help the traveller book a flight. Use search_flights to find options, "
            "then buy_ticket once they pick a flight and give a passenger name. "
            "Ask short questions for anything missing. If they want something other "
            "than booking, call orientation."
        ),
        ConversationMessage.system(f"The traveller asked for: {args.request}"),
    ]


def _policy_qa_state(args: PolicyQuestion) -> list[ConversationMessage]:
    return [
        ConversationMessage.system(
            "You answer questions about airline policy. Always call lookup_policy before "
            "answering and only state what the policy says. If the traveller wants to "
            "book or do something else, call orientation."
        ),
        ConversationMessage.user(args.question),
    ]


orientation = ModeDefinition(
    identity="orientation",
    description="Return to general help when the traveller wants something other than the current task.",
    initial_state=_orientation_state,
    tools=(enters("book_flight"), enters("policy_qa")),
    render_text=render_assistant_text,
)

book_flight = ModeDefinition(
    identity="book_flight",
    description="Start booking a flight. Use when the traveller wants to find or buy a flight.",
    parameter_schema=BookFlightRequest,
    initial_state=_book_flight_state,
    tools=(
        OrdinaryTool(
            name="search_flights",
            description="Search available flights by destination and optional origin.",
            handler=search_flights,
            parameter_schema=FlightSearch,
            render=render_flights,
        ),
        OrdinaryTool(
            name="buy_ticket",
            description="Buy a ticket for a flight number and passenger.",
            handler=buy_ticket,
            parameter_schema=TicketPurchase,
            render=render_ticket,
        ),
        enters("orientation"),
    ),
    render_text=render_booking_text,
)

policy_qa = ModeDefinition(
    identity="policy_qa",
    description="Answer a question about airline policy (refunds, baggage, changes, pets).",
    parameter_schema=PolicyQuestion,
    initial_state=_policy_qa_state,
    tools=(
        OrdinaryTool(
            name="lookup_policy",
            description="Look up policy entries by topic or keyword.",
            handler=lookup_policy,
            parameter_schema=PolicyLookup,
        ),
        enters("orientation"),
    ),
    render_text=render_policy_text,
)


def build_travel_registry() -> ModeRegistry:
    """Build the frozen registry for the travel demo."""
    return ModeRegistry.from_modes([orientation, book_flight, policy_qa])
