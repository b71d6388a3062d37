"""Score report for the OKR dashboard.

Prints the organisation score and every department's score, optionally
with the evaluation breakdown of one department.

Entry point: python -m okr_dashboard.report [--department ID]
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from okr_dashboard.config import get_settings
from okr_dashboard.integrations.okr_api import OkrApiClient
from okr_dashboard.models import Department, ScoreDisplay
from okr_dashboard.scoring.aggregator import display_score, organization_score
from okr_dashboard.scoring.classifier import LevelsLike
from okr_dashboard.scoring.evaluation import EvaluationScorecard
from okr_dashboard.state.dashboard import DashboardState
from okr_dashboard.state.store import ScoreLevelStore

logger = logging.getLogger(__name__)


def _format_display(label: str, display: ScoreDisplay) -> str:
    if not display.available:
        return f"  {label:<15} {display.label}"
    r = display.result
    return f"  {label:<15} {r.score:.2f}  {r.level:<12} {r.percentage:5.1f}%"


def render_summary(departments: Sequence[Department], levels: LevelsLike) -> list[str]:
    """Lines for the organisation summary and per-department scores."""
    org = organization_score(departments, levels)
    lines = [
        f"Organization: {org.score:.2f} ({org.level}, {org.percentage:.1f}%)",
        f"Departments: {len(departments)}",
    ]
    for dept in departments:
        shown = display_score(dept)
        if shown is None:
            lines.append(f"  {dept.name:<30} not scored")
            continue
        marker = " *" if dept.final_score is not None else ""
        lines.append(f"  {dept.name:<30} {shown.score:.2f}  {shown.level}{marker}")
    return lines


def render_scorecard(card: EvaluationScorecard) -> list[str]:
    """Lines for the four-gauge evaluation breakdown."""
    lines = [
        _format_display("Automatic OKR", card.automatic),
        _format_display("Director", card.director),
        _format_display("HR", card.hr),
        _format_display("Final", card.final),
    ]
    if card.director_stars is not None:
        lines.append(f"  Director stars  {card.director_stars}")
    if card.hr_letter:
        lines.append(f"  HR grade        {card.hr_letter}")
    if card.business_block is not None:
        lines.append(f"  Business block  {card.business_block:g} (not weighted)")
    return lines


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point for the score report."""
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Print OKR dashboard scores")
    parser.add_argument("--base-url", default=settings.api_base_url, help="Backend API root")
    parser.add_argument("--department", help="Department ID to show the evaluation breakdown for")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    with OkrApiClient(base_url=args.base_url, timeout=settings.request_timeout_seconds) as client:
        store = ScoreLevelStore(client)
        store.load()
        state = DashboardState(client, store)
        state.fetch_departments()

        if state.banner:
            print(state.banner)
            sys.exit(1)

        for line in render_summary(state.departments, store.levels):
            print(line)

        if args.department:
            card = state.department_scorecard(args.department)
            if card is None:
                print(state.banner)
                sys.exit(1)
            print(f"\nEvaluation breakdown for {args.department}:")
            for line in render_scorecard(card):
                print(line)


if __name__ == "__main__":
    main()
