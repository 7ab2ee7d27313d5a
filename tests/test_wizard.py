import pytest

from dojodesk import wizard as wiz
from dojodesk.wizard import LogBoutWizard, Step, WizardError, submit_wizard

KUMITE = {"competition_disciplines_id": 1, "name": "Kumite -60kg", "team_event": False}
TEAM_KATA = {"competition_disciplines_id": 2, "name": "Team kata", "team_event": True}
ENTRY = {"competition_entries_id": 11, "members_id": 5, "competition_coaches_id": 7, "clubs_id": 3}
TEAM = {"competition_teams_id": 21, "team_name": "Blue", "competition_disciplines_id": 2}


def _to_outcome(wizard, competitor=ENTRY, discipline=KUMITE):
    wizard.choose_discipline(discipline)
    wizard.choose_competitor(competitor)
    if wizard.step is Step.COACH:
        wizard.choose_coach(competitor.get("competition_coaches_id"))
    return wizard


def test_final_win_sets_gold_and_skips_medal_step():
    wizard = _to_outcome(LogBoutWizard(competition_id=1))
    wizard.set_outcome("Win", is_final=True, opponent_name="R. Costa")
    assert wizard.round == "Final"
    assert wizard.medal == "Gold"
    assert wizard.round_reached == "Final"

    assert wizard.set_scores(4, 1) is Step.CONFIRM
    assert Step.MEDAL not in wizard.steps


def test_non_final_win_has_no_medal():
    wizard = _to_outcome(LogBoutWizard(competition_id=1))
    wizard.set_outcome("Win", round="Quarter Final", opponent_name="Kim")
    assert wizard.set_scores("3", "2") is Step.CONFIRM
    assert wizard.medal is None


def test_loss_with_bronze_reaches_semi_final():
    wizard = _to_outcome(LogBoutWizard(competition_id=1))
    wizard.set_outcome("Loss", round="Semi Final", opponent_name="Ito", opponent_club="Kyoto Budokan")
    assert wizard.set_scores(0, 2) is Step.MEDAL
    wizard.choose_medal("Bronze")
    assert wizard.round_reached == "Semi Final"
    assert wizard.step is Step.CONFIRM


def test_loss_without_medal_uses_bout_round():
    wizard = _to_outcome(LogBoutWizard(competition_id=1))
    wizard.set_outcome("Loss", round="Round 2", opponent_name="Ito")
    wizard.set_scores(1, 5)
    wizard.choose_medal(None)
    assert wizard.medal is None
    assert wizard.round_reached == "Round 2"


def test_team_event_skips_coach_step():
    wizard = LogBoutWizard(competition_id=1)
    wizard.choose_discipline(TEAM_KATA)
    assert wizard.choose_competitor(TEAM) is Step.WIN_LOSS
    assert Step.COACH not in wizard.steps


def test_back_returns_to_previous_step():
    wizard = _to_outcome(LogBoutWizard(competition_id=1))
    assert wizard.step is Step.WIN_LOSS
    assert wizard.back() is Step.COACH
    assert wizard.back() is Step.COMPETITOR
    wizard.reset()
    assert wizard.step is Step.DISCIPLINE
    assert wizard.history == []


def test_outcome_requires_round_and_opponent():
    wizard = _to_outcome(LogBoutWizard(competition_id=1))
    with pytest.raises(WizardError, match="Round is required"):
        wizard.set_outcome("Loss", opponent_name="Ito")
    with pytest.raises(WizardError, match="Opponent name is required"):
        wizard.set_outcome("Loss", round="Round 1")


def test_scores_are_required():
    wizard = _to_outcome(LogBoutWizard(competition_id=1))
    wizard.set_outcome("Win", round="Round 1", opponent_name="Ito")
    with pytest.raises(WizardError, match="Both scores are required"):
        wizard.set_scores("", 3)


def test_submit_requires_confirm_step():
    with pytest.raises(WizardError):
        submit_wizard(LogBoutWizard(competition_id=1))


def test_submit_writes_bout_coach_and_result(make_client, use_client):
    client = use_client(make_client(), wiz)
    wizard = LogBoutWizard(competition_id=1)
    wizard.choose_discipline(KUMITE)
    wizard.choose_competitor(ENTRY)
    wizard.choose_coach(8)
    wizard.set_outcome("Loss", round="Final", opponent_name="Ito")
    wizard.set_scores(1, 3)
    wizard.choose_medal("Silver")

    saved = submit_wizard(wizard)

    bout = client.ops("competition_bouts", "insert")[0].payload[0]
    assert bout["competition_entries_id"] == 11
    assert bout["result"] == "Loss"
    coach_update = client.ops("competition_entries", "update")[0]
    assert coach_update.payload == {"competition_coaches_id": 8}
    assert saved["result"]["medal"] == "Silver"
    assert saved["result"]["round_reached"] == "Final"
    assert client.tables["competition_results"][0]["competition_entries_id"] == 11


def test_submit_updates_existing_result_row(make_client, use_client):
    client = use_client(
        make_client(
            {"competition_results": [{"competition_results_id": 9, "competition_entries_id": 11, "medal": "Bronze"}]}
        ),
        wiz,
    )
    wizard = _to_outcome(LogBoutWizard(competition_id=1))
    wizard.set_outcome("Win", is_final=True, opponent_name="Ito")
    wizard.set_scores(2, 0)

    submit_wizard(wizard)

    assert not client.ops("competition_results", "insert")
    assert client.tables["competition_results"] == [
        {"competition_results_id": 9, "competition_entries_id": 11, "medal": "Gold", "round_reached": "Final"}
    ]
    assert not client.ops("competition_entries", "update")


def test_submit_team_bout_updates_team_medal(make_client, use_client):
    client = use_client(make_client({"competition_teams": [dict(TEAM)]}), wiz)
    wizard = LogBoutWizard(competition_id=1)
    wizard.choose_discipline(TEAM_KATA)
    wizard.choose_competitor(TEAM)
    wizard.set_outcome("Win", is_final=True, opponent_name="Red")
    wizard.set_scores(5, 0)

    saved = submit_wizard(wizard)

    assert client.ops("competition_bouts", "insert")[0].payload[0]["competition_teams_id"] == 21
    assert client.tables["competition_teams"][0]["medal"] == "Gold"
    assert saved["team"]["result"] == "Final"
