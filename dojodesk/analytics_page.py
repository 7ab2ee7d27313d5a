"""Club and competition analytics pages (pandas + plotly)."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from dojodesk.services import analytics as svc
from dojodesk.services.competitions import format_date_range
from dojodesk.ui.feedback import show_error
from dojodesk.ui.nav import go as navigate, nav_param

MEDAL_COLORS = {"Gold": "#d4af37", "Silver": "#a8a9ad", "Bronze": "#cd7f32"}
_DATA_KEY = "analytics__data"


def _load_data(*, refresh: bool = False) -> svc.AnalyticsData | None:
    if refresh or _DATA_KEY not in st.session_state:
        try:
            with st.spinner("Crunching club numbers…"):
                st.session_state[_DATA_KEY] = svc.load_analytics_data()
        except Exception as exc:
            show_error(exc, "Failed to load analytics data.")
            return None
    return st.session_state[_DATA_KEY]


def _medal_pie(gold: int, silver: int, bronze: int, title: str):
    counts = {"Gold": gold, "Silver": silver, "Bronze": bronze}
    fig = go.Figure(
        go.Pie(
            labels=list(counts),
            values=list(counts.values()),
            marker=dict(colors=[MEDAL_COLORS[k] for k in counts]),
            hole=0.45,
        )
    )
    fig.update_layout(title=title, margin=dict(l=10, r=10, t=40, b=10), height=320)
    return fig


def _win_rate_bar(rows: List[Dict[str, Any]], title: str):
    df = pd.DataFrame(rows)
    fig = px.bar(df, x="name", y="win_rate", hover_data=["bouts", "wins"], title=title)
    fig.update_layout(yaxis_title="Win rate (%)", xaxis_title="", height=360)
    return fig


# ------------------------------ Club view --------------------------------- #

def _render_overview(stats: Dict[str, Any]) -> None:
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total medals", stats["total_medals"])
    c2.metric("Win rate", f"{stats['win_rate']}%", delta=f"{stats['year_on_year_trend']}% YoY")
    c3.metric("Medal efficiency", f"{stats['medal_efficiency']}%")
    c4.metric("Competitions attended", stats["competitions_attended"])

    c5, c6, c7, c8 = st.columns(4)
    c5.metric("Bouts", stats["total_bouts"])
    c6.metric("Wins", stats["total_wins"])
    c7.metric("Losses", stats["total_losses"])
    c8.metric("Competitors", stats["total_competitors"])

    top, improved, team = st.columns(3)
    with top.container(border=True):
        st.markdown("**Top performer**")
        st.write(stats["top_performer"]["name"])
        st.caption(
            f"{stats['top_performer']['medal_points']} medal points · {stats['top_performer']['win_rate']}% wins"
        )
    with improved.container(border=True):
        st.markdown("**Most improved**")
        st.write(stats["most_improved"]["name"])
        st.caption(f"{stats['most_improved']['improvement']:+}% win rate over the last 3 competitions")
    with team.container(border=True):
        st.markdown("**Best team**")
        st.write(stats["best_team"]["team"])
        st.caption(", ".join(stats["best_team"]["members"]) or f"{stats['best_team']['win_rate']}% wins")

    left, right = st.columns(2)
    left.plotly_chart(
        _medal_pie(stats["gold"], stats["silver"], stats["bronze"], "Medal split"),
        use_container_width=True,
    )
    levels = stats["competition_levels"]
    right.plotly_chart(
        px.bar(
            x=[k.capitalize() for k in levels],
            y=list(levels.values()),
            labels={"x": "Level", "y": "Competitions"},
            title="Competition levels",
        ),
        use_container_width=True,
    )
    if stats["unique_locations"]:
        st.caption("Locations: " + ", ".join(stats["unique_locations"]))


def _render_trends(data: svc.AnalyticsData) -> None:
    trends = svc.year_on_year_trends(data)
    if not trends:
        st.info("No dated competitions yet.")
        return
    df = pd.DataFrame(trends)
    medals = df.melt(id_vars="year", value_vars=["gold", "silver", "bronze"], var_name="medal", value_name="count")
    medals["medal"] = medals["medal"].str.capitalize()
    st.plotly_chart(
        px.bar(medals, x="year", y="count", color="medal", color_discrete_map=MEDAL_COLORS, title="Medals per year"),
        use_container_width=True,
    )
    st.plotly_chart(px.line(df, x="year", y="win_rate", markers=True, title="Win rate per year (%)"), use_container_width=True)
    st.dataframe(df, hide_index=True, use_container_width=True)


def _render_breakdowns(data: svc.AnalyticsData) -> None:
    by_member = svc.win_rate_by_member(data)
    by_coach = svc.win_rate_by_coach(data)
    if by_member:
        st.plotly_chart(_win_rate_bar(by_member[:15], "Win rate by competitor"), use_container_width=True)
    if by_coach:
        st.plotly_chart(_win_rate_bar(by_coach, "Win rate by coach"), use_container_width=True)

    medals = svc.medals_breakdown(data)
    st.subheader("Medal table")
    if medals["individual"]:
        st.dataframe(
            pd.DataFrame(medals["individual"])[["name", "gold", "silver", "bronze", "total"]],
            hide_index=True,
            use_container_width=True,
        )
    if medals["teams"]:
        st.markdown("**Teams**")
        st.dataframe(pd.DataFrame(medals["teams"]), hide_index=True, use_container_width=True)
    if not medals["individual"] and not medals["teams"]:
        st.info("No medals recorded yet.")


def _render_competitor(data: svc.AnalyticsData) -> None:
    member_ids = sorted(
        {e.get("members_id") for e in data.entries if e.get("members_id")},
        key=data.member_name,
    )
    if not member_ids:
        st.info("No competitors have entered a competition yet.")
        return
    member_id = st.selectbox("Competitor", member_ids, format_func=data.member_name, key="analytics__member")
    stats = svc.competitor_analytics(data, member_id)

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Medals", stats["total_medals"])
    c2.metric("Win rate", f"{stats['win_rate']}%")
    c3.metric("Bouts", stats["total_bouts"])
    streak = stats["current_streak"]
    c4.metric("Current streak", f"{streak['count']} {streak['type']}{'s' if streak['count'] != 1 else ''}")

    if stats["performance_over_time"]:
        df = pd.DataFrame(stats["performance_over_time"])
        df["won"] = (df["result"] == "win").astype(int)
        df["cumulative_win_rate"] = (df["won"].cumsum() / (df.index + 1) * 100).round(1)
        st.plotly_chart(
            px.line(df, x="date", y="cumulative_win_rate", markers=True, hover_data=["competition", "round"],
                    title="Cumulative win rate (%)"),
            use_container_width=True,
        )
    if stats["coach_performance"]:
        st.plotly_chart(_win_rate_bar(stats["coach_performance"], "Win rate by coach"), use_container_width=True)
    if stats["bout_history"]:
        st.dataframe(pd.DataFrame(stats["bout_history"]), hide_index=True, use_container_width=True)


def show_club_analytics_page() -> None:
    st.title("📈 Club analytics")
    if st.button("Refresh data", key="analytics__refresh"):
        _load_data(refresh=True)
    data = _load_data()
    if data is None:
        return
    if not data.entries and not data.bouts:
        st.info("No competition data yet. Register members and log bouts to see analytics.")
        return

    stats = svc.club_analytics(data, date.today())
    overview, trends, breakdown, competitor = st.tabs(["Overview", "Trends", "Breakdown", "Competitor"])
    with overview:
        _render_overview(stats)
    with trends:
        _render_trends(data)
    with breakdown:
        _render_breakdowns(data)
    with competitor:
        _render_competitor(data)


# --------------------------- Competition view ----------------------------- #

def show_competition_analytics_page() -> None:
    competition_id = nav_param("competition_id")
    if competition_id is None:
        st.title("Competition analytics")
        st.info("Open a competition's analytics from the Competitions page.")
        if st.button("Go to competitions", key="analytics__to_competitions"):
            navigate("Competitions")
        return

    try:
        loaded = svc.load_competition_analytics(competition_id)
    except Exception as exc:
        show_error(exc, "Failed to load competition analytics.")
        return
    competition = loaded["competition"]
    if competition is None:
        st.warning("Competition not found.")
        return

    stats = svc.competition_analytics(competition, loaded["entries"], loaded["results"])
    st.title(f"{competition.get('Name') or 'Competition'} · analytics")
    st.caption(
        format_date_range(competition.get("date_start"), competition.get("date_end"), competition.get("singular_day_event"))
    )
    if st.button("◀ Competitions", key="analytics__back"):
        navigate("Competitions")

    c1, c2, c3 = st.columns(3)
    c1.metric("Participants", stats["total_participants"])
    c2.metric("Disciplines", stats["unique_disciplines"])
    c3.metric("Medals", sum(stats["medal_distribution"].values()))

    dist = stats["medal_distribution"]
    left, right = st.columns(2)
    left.plotly_chart(_medal_pie(dist["gold"], dist["silver"], dist["bronze"], "Medal distribution"), use_container_width=True)
    if stats["top_performers"]:
        right.plotly_chart(
            px.bar(pd.DataFrame(stats["top_performers"]), x="member", y="entries", title="Most entries"),
            use_container_width=True,
        )
    if stats["discipline_breakdown"]:
        st.dataframe(pd.DataFrame(stats["discipline_breakdown"]), hide_index=True, use_container_width=True)
    else:
        st.info("No entries for this competition.")


__all__ = ["show_club_analytics_page", "show_competition_analytics_page"]
