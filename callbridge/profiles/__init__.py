"""
Conversation profiles.

A profile bundles the persona (system instruction) and session options used
when a call opens its live session. Clients pick a profile with the
``appRoute`` field of their hello message; unknown or missing routes fall back
to the default inbound profile.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from . import inbound_intake, outbound_sales

DEFAULT_ROUTE = "/"
OUTBOUND_ROUTE = "/outbound"


@dataclass(frozen=True)
class ConversationProfile:
    """Persona and per-call options for a live session.

    ``voice`` overrides the configured default voice when set.
    """

    name: str
    description: str
    system_instruction: str
    voice: Optional[str] = None
    transcripts_enabled: bool = True


INBOUND_INTAKE_PROFILE = ConversationProfile(
    name="inbound_intake",
    description="Inbound client intake for a software and automation agency",
    system_instruction=inbound_intake.SYSTEM_INSTRUCTION,
)

OUTBOUND_SALES_PROFILE = ConversationProfile(
    name="outbound_sales",
    description="Outbound fuel-card sales call",
    system_instruction=outbound_sales.SYSTEM_INSTRUCTION,
)

PROFILES: Dict[str, ConversationProfile] = {
    DEFAULT_ROUTE: INBOUND_INTAKE_PROFILE,
    OUTBOUND_ROUTE: OUTBOUND_SALES_PROFILE,
}


def get_profile(app_route: Optional[str] = None) -> ConversationProfile:
    """Return the profile registered for ``app_route``, or the default one."""
    if app_route and app_route in PROFILES:
        return PROFILES[app_route]
    return INBOUND_INTAKE_PROFILE


def get_system_instruction(app_route: Optional[str] = None) -> str:
    return get_profile(app_route).system_instruction
