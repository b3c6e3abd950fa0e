"""Common test fixtures for modeflow tests."""

from typing import Optional

import pytest
from pydantic import BaseModel

from modeflow.core.config import get_settings
from modeflow.integrations.invoker import ScriptedModelInvoker
from modeflow.modes.definition import ModeDefinition, OrdinaryTool, enters
from modeflow.modes.messages import ConversationMessage
from modeflow.modes.registry import ModeRegistry
from modeflow.modes.runtime import ModeRuntime


class BookFlightArgs(BaseModel):
    request: str


class PolicyArgs(BaseModel):
    question: str


class SearchArgs(BaseModel):
    destination: str
    origin: Optional[str] = None


class BuyArgs(BaseModel):
    flight_number: str


class LookupArgs(BaseModel):
    topic: str


FLIGHTS = [
    {"flight_number": "HA1", "destination": "Honolulu"},
    {"flight_number": "HA2", "destination": "Maui"},
]


def orientation_seed(_args) -> list[ConversationMessage]:
    return [ConversationMessage.system("You are a travel assistant.")]


def book_flight_seed(args: BookFlightArgs) -> list[ConversationMessage]:
    return [
        ConversationMessage.system("You book flights."),
        ConversationMessage.system(f"Request: {args.request}"),
    ]


def policy_seed(args: PolicyArgs) -> list[ConversationMessage]:
    return [
        ConversationMessage.system("You answer policy questions."),
        ConversationMessage.user(args.question),
    ]


def search_flights(args: SearchArgs) -> list[dict]:
    return [f for f in FLIGHTS if args.destination.lower() in f["destination"].lower()]


def buy_ticket(args: BuyArgs) -> dict:
    if args.flight_number not in {f["flight_number"] for f in FLIGHTS}:
        raise ValueError(f"No flight {args.flight_number}")
    return {"confirmation": "ABC123", "flight_number": args.flight_number}


async def lookup_policy(args: LookupArgs) -> str:
    return f"Policy for {args.topic}: refunds within 24 hours."


def make_modes(factory_calls: Optional[list] = None) -> list[ModeDefinition]:
    """Build the orientation / book_flight / policy_qa test modes.

    Render contracts return (contract, payload) tuples so tests can tell
    which contract produced an output.
    """
    calls = factory_calls if factory_calls is not None else []

    def tracked(identity, seed):
        def factory(args):
            calls.append((identity, args))
            return seed(args)
        return factory

    orientation = ModeDefinition(
        identity="orientation",
        description="General help and routing.",
        initial_state=tracked("orientation", orientation_seed),
        tools=(enters("book_flight"), enters("policy_qa")),
        render_text=lambda text: ("orientation", text),
    )
    book_flight = ModeDefinition(
        identity="book_flight",
        description="Book a flight.",
        parameter_schema=BookFlightArgs,
        initial_state=tracked("book_flight", book_flight_seed),
        tools=(
            OrdinaryTool(
                name="search_flights",
                description="Search flights.",
                handler=search_flights,
                parameter_schema=SearchArgs,
                render=lambda result: ("search_flights", result),
            ),
            OrdinaryTool(
                name="buy_ticket",
                description="Buy a ticket.",
                handler=buy_ticket,
                parameter_schema=BuyArgs,
                render=lambda result: ("buy_ticket", result),
            ),
            enters("orientation"),
        ),
        render_text=lambda text: ("book_flight", text),
    )
    policy_qa = ModeDefinition(
        identity="policy_qa",
        description="Answer policy questions.",
        parameter_schema=PolicyArgs,
        initial_state=tracked("policy_qa", policy_seed),
        tools=(
            OrdinaryTool(
                name="lookup_policy",
                description="Look up a policy.",
                handler=lookup_policy,
                parameter_schema=LookupArgs,
            ),
            enters("orientation"),
        ),
        render_text=lambda text: ("policy_qa", text),
    )
    return [orientation, book_flight, policy_qa]


@pytest.fixture
def factory_calls():
    """Records every initial state factory call as (mode, args)."""
    return []


@pytest.fixture
def registry(factory_calls):
    """Frozen registry with the three test modes."""
    return ModeRegistry.from_modes(make_modes(factory_calls))


@pytest.fixture
def scripted():
    """Scripted model invoker with an empty queue."""
    return ScriptedModelInvoker()


@pytest.fixture
def runtime(registry, scripted):
    """Runtime over the test registry and scripted model."""
    return ModeRuntime(registry, scripted, max_model_rounds=4)


@pytest.fixture
def session(runtime):
    """Session started in orientation."""
    return runtime.create_session("orientation")


@pytest.fixture
def clean_settings(monkeypatch):
    """Clear cached settings around a test that changes the environment."""
    for var in ("LLM_API_KEY", "LLM_BASE_URL", "LLM_MODEL", "MODEFLOW_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()
