"""Scope validation, addressability and level projection."""

import pytest

from ticketrules.errors import ScopeValidationError
from ticketrules.models import Level, Scope


def test_blank_keys_are_absent():
    scope = Scope.coerce({"sport_type": "football", "tournament_id": "  ", "event_id": "", "ticket_id": "t1"})
    assert scope.tournament_id is None
    assert scope.event_id is None
    assert scope.ticket_id == "t1"


@pytest.mark.parametrize("raw", [{}, {"sport_type": ""}, {"sport_type": "   "}, {"event_id": "e1"}])
def test_missing_sport_type_is_rejected(raw):
    with pytest.raises(ScopeValidationError):
        Scope.coerce(raw)


def test_non_mapping_is_rejected():
    with pytest.raises(ScopeValidationError):
        Scope.coerce(["football"])


def test_addressable_levels_need_all_keys():
    full = Scope(sport_type="football", tournament_id="epl", team_id="ars", event_id="e1", ticket_id="t1")
    assert full.addressable_levels() == [Level.TICKET, Level.EVENT, Level.TEAM, Level.TOURNAMENT, Level.SPORT]

    # ticket without event cannot address the ticket level; team without tournament cannot address team
    partial = Scope(sport_type="football", team_id="ars", ticket_id="t1")
    assert partial.addressable_levels() == [Level.SPORT]


def test_rule_scope_projects_onto_target_level():
    scope = Scope(sport_type="football", tournament_id="epl", team_id="ars", event_id="e1")
    assert scope.target_level is Level.EVENT
    stored = scope.rule_scope()
    assert stored == Scope(sport_type="football", event_id="e1")


def test_rule_scope_without_ancestor_is_rejected():
    with pytest.raises(ScopeValidationError, match="tournament_id"):
        Scope(sport_type="football", team_id="ars").rule_scope()


def test_legacy_key_requires_event_and_ticket():
    assert Scope(sport_type="football", event_id="e1", ticket_id="t1").legacy_key == ("e1", "t1")
    assert Scope(sport_type="football", ticket_id="t1").legacy_key is None
