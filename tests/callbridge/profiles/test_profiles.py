import pytest

from callbridge.profiles import (
    INBOUND_INTAKE_PROFILE,
    OUTBOUND_SALES_PROFILE,
    get_profile,
    get_system_instruction,
)


def test_outbound_route_selects_sales_profile():
    assert get_profile("/outbound") is OUTBOUND_SALES_PROFILE
    assert "Paulius" in get_system_instruction("/outbound")


@pytest.mark.parametrize("route", [None, "", "/", "/inbound", "/outbound/extra"])
def test_other_routes_select_default_profile(route):
    assert get_profile(route) is INBOUND_INTAKE_PROFILE
    assert "Tomas" in get_system_instruction(route)


def test_profiles_use_configured_voice_by_default():
    assert INBOUND_INTAKE_PROFILE.voice is None
    assert OUTBOUND_SALES_PROFILE.voice is None
