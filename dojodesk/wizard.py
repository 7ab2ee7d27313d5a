"""Step-by-step bout logging for the competition results page.

The wizard walks ``discipline -> competitor -> coach -> win_loss -> scores ->
medal -> confirm``. Team disciplines skip the coach step, and a final win
skips the medal step because the medal is already known to be Gold.
``LogBoutWizard`` only tracks answers and the current step; ``submit_wizard``
writes the collected answers to Supabase.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from loguru import logger

from dojodesk import db_tables as T
from dojodesk.errors import service_call
from dojodesk.services.results import MEDALS, round_reached_for_medal
from dojodesk.supabase_client import get_client

__all__ = ["LogBoutWizard", "Step", "WizardError", "submit_wizard"]


class Step(str, Enum):
    DISCIPLINE = "discipline"
    COMPETITOR = "competitor"
    COACH = "coach"
    WIN_LOSS = "win_loss"
    SCORES = "scores"
    MEDAL = "medal"
    CONFIRM = "confirm"


STEP_TITLES = {
    Step.DISCIPLINE: "Choose discipline",
    Step.COMPETITOR: "Choose competitor",
    Step.COACH: "Corner coach",
    Step.WIN_LOSS: "Win or loss",
    Step.SCORES: "Scores",
    Step.MEDAL: "Medal",
    Step.CONFIRM: "Confirm",
}


class WizardError(ValueError):
    """Raised when a step is submitted with missing or invalid answers."""


@dataclass
class LogBoutWizard:
    competition_id: int
    step: Step = Step.DISCIPLINE
    history: List[Step] = field(default_factory=list)

    discipline_id: Optional[int] = None
    team_event: bool = False
    entry: Optional[Dict[str, Any]] = None
    team: Optional[Dict[str, Any]] = None
    coach_id: Optional[int] = None
    result: Optional[str] = None
    is_final: bool = False
    round: str = ""
    opponent_name: str = ""
    opponent_club: Optional[str] = None
    score_for: Optional[int] = None
    score_against: Optional[int] = None
    medal: Optional[str] = None
    round_reached: Optional[str] = None

    # -- navigation ---------------------------------------------------------

    def _advance(self, next_step: Step) -> Step:
        self.history.append(self.step)
        self.step = next_step
        return next_step

    def back(self) -> Step:
        if self.history:
            self.step = self.history.pop()
        return self.step

    def reset(self) -> None:
        fresh = LogBoutWizard(competition_id=self.competition_id)
        self.__dict__.update(fresh.__dict__)

    def _expect(self, step: Step) -> None:
        if self.step is not step:
            raise WizardError(f"Expected step '{step.value}', wizard is at '{self.step.value}'")

    @property
    def steps(self) -> List[Step]:
        """The steps this run will show, given the answers so far."""
        path = [Step.DISCIPLINE, Step.COMPETITOR]
        if not self.team_event:
            path.append(Step.COACH)
        path += [Step.WIN_LOSS, Step.SCORES]
        if self.result != "Win":
            path.append(Step.MEDAL)
        path.append(Step.CONFIRM)
        return path

    @property
    def progress(self) -> float:
        path = self.steps
        position = path.index(self.step) if self.step in path else 0
        return position / max(len(path) - 1, 1)

    # -- step submissions ---------------------------------------------------

    def choose_discipline(self, discipline: Dict[str, Any]) -> Step:
        self._expect(Step.DISCIPLINE)
        if not discipline or discipline.get("competition_disciplines_id") is None:
            raise WizardError("Select a discipline")
        self.discipline_id = discipline["competition_disciplines_id"]
        self.team_event = bool(discipline.get("team_event"))
        self.entry = None
        self.team = None
        return self._advance(Step.COMPETITOR)

    def choose_competitor(self, competitor: Dict[str, Any]) -> Step:
        """Pick an entry, or a team for team disciplines."""
        self._expect(Step.COMPETITOR)
        if not competitor:
            raise WizardError("Select a team" if self.team_event else "Select a competitor")
        if self.team_event:
            self.team = competitor
            self.coach_id = competitor.get("competition_coaches_id")
            return self._advance(Step.WIN_LOSS)
        self.entry = competitor
        self.coach_id = competitor.get("competition_coaches_id")
        return self._advance(Step.COACH)

    def choose_coach(self, coach_id: Optional[int]) -> Step:
        self._expect(Step.COACH)
        self.coach_id = coach_id
        return self._advance(Step.WIN_LOSS)

    def set_outcome(
        self,
        result: str,
        *,
        is_final: bool = False,
        round: str = "",
        opponent_name: str = "",
        opponent_club: Optional[str] = None,
    ) -> Step:
        self._expect(Step.WIN_LOSS)
        if result not in ("Win", "Loss"):
            raise WizardError("Result must be Win or Loss")
        self.result = result
        self.is_final = bool(is_final)
        self.round = (round or "").strip() or ("Final" if self.is_final else "")
        self.opponent_name = (opponent_name or "").strip()
        self.opponent_club = (opponent_club or "").strip() or None
        if not self.round:
            raise WizardError("Round is required")
        if not self.opponent_name:
            raise WizardError("Opponent name is required")

        if result == "Win" and self.is_final:
            self.medal = "Gold"
            self.round_reached = "Final"
        else:
            self.medal = None
            self.round_reached = None
        return self._advance(Step.SCORES)

    def set_scores(self, score_for: Any, score_against: Any) -> Step:
        self._expect(Step.SCORES)
        if score_for in (None, "") or score_against in (None, ""):
            raise WizardError("Both scores are required")
        try:
            self.score_for = int(score_for)
            self.score_against = int(score_against)
        except (TypeError, ValueError) as exc:
            raise WizardError("Scores must be whole numbers") from exc
        if self.score_for < 0 or self.score_against < 0:
            raise WizardError("Scores cannot be negative")
        if self.result == "Win":
            return self._advance(Step.CONFIRM)
        return self._advance(Step.MEDAL)

    def choose_medal(self, medal: Optional[str]) -> Step:
        """Record the placing after a loss; ``None`` means no medal."""
        self._expect(Step.MEDAL)
        if medal is not None and medal not in MEDALS:
            raise WizardError(f"Unknown medal '{medal}'")
        self.medal = medal
        self.round_reached = round_reached_for_medal(medal) if medal else self.round
        return self._advance(Step.CONFIRM)

    # -- output -------------------------------------------------------------

    def bout_row(self) -> Dict[str, Any]:
        source = self.team if self.team_event else self.entry
        return {
            "competition_entries_id": None if self.team_event else (self.entry or {}).get("competition_entries_id"),
            "competition_teams_id": (self.team or {}).get("competition_teams_id") if self.team_event else None,
            "clubs_id": (source or {}).get("clubs_id"),
            "round": self.round,
            "opponent_name": self.opponent_name,
            "opponent_club": self.opponent_club,
            "score_for": self.score_for,
            "score_against": self.score_against,
            "result": self.result,
        }

    def summary(self) -> Dict[str, Any]:
        return {
            "result": self.result,
            "round": self.round,
            "opponent": self.opponent_name,
            "score": f"{self.score_for}-{self.score_against}",
            "medal": self.medal,
            "round_reached": self.round_reached,
        }


def submit_wizard(wizard: LogBoutWizard) -> Dict[str, Any]:
    """Write the wizard's bout, coach change and medal.

    Each write is its own request; a failure part-way leaves earlier writes in
    place.
    """
    if wizard.step is not Step.CONFIRM:
        raise WizardError("Finish every step before saving")

    client = get_client()
    saved: Dict[str, Any] = {"bout": None, "result": None, "team": None}
    with service_call("LogBoutWizard:submit"):
        rows = client.table(T.COMPETITION_BOUTS).insert([wizard.bout_row()]).execute().data or []
        saved["bout"] = rows[0] if rows else wizard.bout_row()

        if wizard.team_event and wizard.team:
            if wizard.medal:
                patch = {"medal": wizard.medal, "result": wizard.round_reached}
                client.table(T.COMPETITION_TEAMS).update(patch).eq(
                    "competition_teams_id", wizard.team["competition_teams_id"]
                ).execute()
                saved["team"] = {**wizard.team, **patch}
        elif wizard.entry:
            entry_id = wizard.entry["competition_entries_id"]
            if wizard.coach_id != wizard.entry.get("competition_coaches_id"):
                client.table(T.COMPETITION_ENTRIES).update(
                    {"competition_coaches_id": wizard.coach_id}
                ).eq("competition_entries_id", entry_id).execute()
            if wizard.medal:
                result_row = {
                    "competition_entries_id": entry_id,
                    "medal": wizard.medal,
                    "round_reached": wizard.round_reached,
                }
                existing = (
                    client.table(T.COMPETITION_RESULTS)
                    .select("competition_results_id")
                    .eq("competition_entries_id", entry_id)
                    .limit(1)
                    .execute()
                ).data or []
                if existing:
                    result_id = existing[0]["competition_results_id"]
                    client.table(T.COMPETITION_RESULTS).update(result_row).eq(
                        "competition_results_id", result_id
                    ).execute()
                    saved["result"] = {"competition_results_id": result_id, **result_row}
                else:
                    created = client.table(T.COMPETITION_RESULTS).insert([result_row]).execute().data or []
                    saved["result"] = created[0] if created else result_row

    logger.info(
        "[LogBoutWizard:submit] competition={} result={} medal={}",
        wizard.competition_id,
        wizard.result,
        wizard.medal,
    )
    return saved
