"""
Tutor Scoring Pipeline
Scores every tutor in a roster, attaches AI insights and selects the at-risk cohort
"""
import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd

from core.config import settings
from core.shared import PerformanceTimer, log_step

from .core.churn import TrainOptions
from .core.interventions import InterventionLibrary
from .core.metrics import SESSION_COLUMNS, SessionsLike, as_session_frame, compute_metrics, to_kpis
from .core.personas import PersonaRegistry
from .core.scoring import compute_churn_risk, compute_score, resolve_formula_version
from .core.trend import build_trend, build_trend_dates
from .models import FormulaVersion, ThresholdRecommendation, TutorRecord, TutorScoreCard
from .orchestrator import generate_ai_insights
from .utils import round_half_up

logger = logging.getLogger(__name__)

TOP_AT_RISK_PREVIEW = 5


@dataclass
class PipelineSummary:
    """Run statistics handed to the CLI / API layer."""
    processed: int
    total_sessions: int
    orphaned_sessions: int
    formula_version: FormulaVersion
    at_risk_count: int
    top_at_risk: List[Dict[str, Any]]
    ai_thresholds: ThresholdRecommendation
    generated_at: str
    duration_ms: float = 0.0
    ai_processing_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "totalSessions": self.total_sessions,
            "orphanedSessions": self.orphaned_sessions,
            "formulaVersion": self.formula_version.value,
            "atRiskCount": self.at_risk_count,
            "topAtRisk": [dict(entry) for entry in self.top_at_risk],
            "aiThresholds": self.ai_thresholds.to_dict(),
            "generatedAt": self.generated_at,
            "durationMs": self.duration_ms,
            "aiProcessingMs": self.ai_processing_ms,
        }


@dataclass
class ScoringRunResult:
    tutors: List[TutorScoreCard]
    at_risk: List[TutorScoreCard]
    summary: PipelineSummary
    trend_dates: List[dt.date] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """The persisted scores document shape."""
        return {
            "generated_at": self.summary.generated_at,
            "formula_version": self.summary.formula_version.value,
            "ai_thresholds": self.summary.ai_thresholds.to_dict(),
            "tutors": [card.to_dict() for card in self.tutors],
        }


def _sort_key(card: TutorScoreCard):
    return (card.score, card.tutor_id)


def select_at_risk_tutors(
    cards: Sequence[TutorScoreCard],
    score_cutoff: Optional[int] = None,
    bottom_share: Optional[float] = None,
    max_tutors: Optional[int] = None,
) -> List[TutorScoreCard]:
    """
    Pick the smaller of two cohorts: tutors below the score cut-off, or the
    bottom share of the roster (at least one tutor). On equal size the cohort
    with the lower minimum score wins, the cut-off cohort on a tie.
    """
    config = settings.at_risk_config
    score_cutoff = config["score_cutoff"] if score_cutoff is None else score_cutoff
    bottom_share = config["bottom_share"] if bottom_share is None else bottom_share
    max_tutors = config["max_tutors"] if max_tutors is None else max_tutors

    if not cards:
        return []

    ordered = sorted(cards, key=_sort_key)
    below_cutoff = [c for c in ordered if c.score < score_cutoff]
    bottom = ordered[:max(1, int(len(ordered) * bottom_share))]

    if len(below_cutoff) < len(bottom):
        selected = below_cutoff
    elif len(bottom) < len(below_cutoff):
        selected = bottom
    else:
        below_min = below_cutoff[0].score if below_cutoff else float("inf")
        bottom_min = bottom[0].score if bottom else float("inf")
        selected = below_cutoff if below_min <= bottom_min else bottom

    return sorted(selected, key=_sort_key)[:max_tutors]


class TutorScoringPipeline:
    """Score cards, AI insights and at-risk cohort for one roster snapshot."""

    def __init__(
        self,
        formula_version: Optional[Union[FormulaVersion, str]] = None,
        personas: Optional[PersonaRegistry] = None,
        interventions: Optional[InterventionLibrary] = None,
        train_options: Optional[TrainOptions] = None,
        trend_days: Optional[int] = None,
    ):
        self.formula_version = resolve_formula_version(formula_version)
        self.personas = personas
        self.interventions = interventions
        self.train_options = train_options or TrainOptions.from_settings()
        self.trend_days = trend_days or settings.TREND_WINDOW_DAYS

    def _index_tutors(self, tutors: Iterable[TutorRecord]) -> Dict[str, TutorRecord]:
        roster: Dict[str, TutorRecord] = {}
        for tutor in tutors:
            if tutor.tutor_id in roster:
                logger.warning(f"Duplicate tutor id {tutor.tutor_id}; keeping the later record")
            roster[tutor.tutor_id] = tutor
        return roster

    def _split_sessions(self, sessions: SessionsLike, roster: Dict[str, TutorRecord]):
        df = as_session_frame(sessions)
        if df.empty:
            return pd.DataFrame(columns=SESSION_COLUMNS), 0

        known = df["tutor_id"].isin(list(roster))
        orphaned = int((~known).sum())
        if orphaned:
            logger.warning(f"Dropping {orphaned} session(s) for unknown tutor ids")
        return df[known], orphaned

    def build_score_cards(
        self,
        roster: Dict[str, TutorRecord],
        sessions: pd.DataFrame,
        trend_dates: Sequence[dt.date],
    ) -> List[TutorScoreCard]:
        grouped = {tutor_id: group for tutor_id, group in sessions.groupby("tutor_id", sort=False)} if len(sessions) else {}
        empty = pd.DataFrame(columns=SESSION_COLUMNS)

        cards = []
        for tutor in roster.values():
            tutor_sessions = grouped.get(tutor.tutor_id, empty)
            metrics = compute_metrics(tutor_sessions)
            score = compute_score(metrics, self.formula_version)
            trend = build_trend(tutor_sessions, trend_dates, score, self.formula_version)
            risk = compute_churn_risk(metrics, score, trend)

            cards.append(TutorScoreCard(
                tutor_id=tutor.tutor_id,
                name=tutor.name,
                subject=tutor.subject,
                score=score,
                trend_7d=trend,
                kpis=to_kpis(metrics),
                churn_risk=round_half_up(risk * 100, 1),
            ))

        cards.sort(key=_sort_key)
        return cards

    def run(
        self,
        tutors: Iterable[TutorRecord],
        sessions: SessionsLike,
        as_of: Optional[dt.date] = None,
    ) -> ScoringRunResult:
        """
        Score every rostered tutor and attach AI insights.

        `as_of` pins the last day of the trend window; by default the window
        ends at the latest session date.
        """
        with PerformanceTimer(f"scoring run ({self.formula_version.value})") as run_timer:
            roster = self._index_tutors(tutors)
            known_sessions, orphaned = self._split_sessions(sessions, roster)
            log_step("LOAD", f"{len(roster)} tutors, {len(known_sessions)} sessions, {orphaned} orphaned")

            latest = as_of
            if latest is None and len(known_sessions):
                latest = max(known_sessions["date"])
            trend_dates = build_trend_dates(latest, self.trend_days)

            cards = self.build_score_cards(roster, known_sessions, trend_dates)
            log_step("SCORE", f"Scored {len(cards)} tutors with formula {self.formula_version.value}")

            with PerformanceTimer("AI insights") as ai_timer:
                result = generate_ai_insights(
                    cards,
                    personas=self.personas,
                    interventions=self.interventions,
                    train_options=self.train_options,
                )
            for card in cards:
                card.ai = result.insights.get(card.tutor_id)

            at_risk = select_at_risk_tutors(cards)
            log_step("AT_RISK", f"Selected {len(at_risk)} at-risk tutors")

        summary = PipelineSummary(
            processed=len(cards),
            total_sessions=len(known_sessions),
            orphaned_sessions=orphaned,
            formula_version=self.formula_version,
            at_risk_count=len(at_risk),
            top_at_risk=[
                {"tutor_id": c.tutor_id, "name": c.name, "score": c.score}
                for c in cards[:TOP_AT_RISK_PREVIEW]
            ],
            ai_thresholds=result.threshold_summary,
            generated_at=dt.datetime.now(dt.timezone.utc).isoformat(),
            duration_ms=run_timer.duration_ms,
            ai_processing_ms=ai_timer.duration_ms,
        )
        return ScoringRunResult(tutors=cards, at_risk=at_risk, summary=summary, trend_dates=list(trend_dates))


def run_scoring_pipeline(
    tutors: Iterable[TutorRecord],
    sessions: SessionsLike,
    formula_version: Optional[Union[FormulaVersion, str]] = None,
    as_of: Optional[dt.date] = None,
) -> ScoringRunResult:
    return TutorScoringPipeline(formula_version=formula_version).run(tutors, sessions, as_of=as_of)
