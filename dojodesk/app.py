# file: dojodesk/app.py
from __future__ import annotations

import sys
from pathlib import Path

# ``streamlit run dojodesk/app.py`` puts dojodesk/ itself on sys.path, not the
# project root; prepend the root so ``import dojodesk`` resolves to this tree.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import streamlit as st  # noqa: E402
from loguru import logger  # noqa: E402

from dojodesk import __version__  # noqa: E402
from dojodesk.analytics_page import (  # noqa: E402
    show_club_analytics_page,
    show_competition_analytics_page,
)
from dojodesk.competitions_page import show_competitions_page  # noqa: E402
from dojodesk.config import SupabaseConfigError, load_settings  # noqa: E402
from dojodesk.login import login, logout  # noqa: E402
from dojodesk.logging_setup import configure_logging  # noqa: E402
from dojodesk.martial_arts_page import show_martial_art_page  # noqa: E402
from dojodesk.members_page import show_members_page  # noqa: E402
from dojodesk.results_page import show_results_page  # noqa: E402
from dojodesk.settings_page import show_settings_page  # noqa: E402
from dojodesk.supabase_client import subscribe_auth_changes  # noqa: E402
from dojodesk.ui.nav import set_page  # noqa: E402
from dojodesk.ui.sidebar import build_sidebar, is_sidebar_collapsed  # noqa: E402

APP_TITLE = "DojoDesk"
APP_TAGLINE = "Club competition console"
APP_VERSION = __version__

# --------- Nav
NAV_KEYS = [
    "Competitions",
    "Results",
    "Competition Analytics",
    "Club Analytics",
    "Members",
    "Martial Art",
    "Settings",
]
NAV_LABELS = {
    "Competitions": "Competitions",
    "Results": "Competition results",
    "Competition Analytics": "Competition analytics",
    "Club Analytics": "Club analytics",
    "Members": "Members",
    "Martial Art": "Martial art",
    "Settings": "Settings",
}
NAV_ICONS = {
    "Competitions": "🥋",
    "Results": "🏅",
    "Competition Analytics": "📊",
    "Club Analytics": "📈",
    "Members": "👥",
    "Martial Art": "🎽",
    "Settings": "⚙️",
}
LEGACY_REMAP = {
    "competitions": "Competitions",
    "competition-results": "Results",
    "competition-analytics": "Competition Analytics",
    "analytics": "Club Analytics",
    "members": "Members",
    "martial-art": "Martial Art",
    "settings": "Settings",
}
PAGE_FUNCS = {
    "Competitions": show_competitions_page,
    "Results": show_results_page,
    "Competition Analytics": show_competition_analytics_page,
    "Club Analytics": show_club_analytics_page,
    "Members": show_members_page,
    "Martial Art": show_martial_art_page,
    "Settings": show_settings_page,
}


def _initial_page() -> str:
    p = st.query_params.get("p", None)
    p = LEGACY_REMAP.get(p, p)
    return p if p in NAV_KEYS else NAV_KEYS[0]


def main() -> None:
    st.set_page_config(
        page_title=APP_TITLE,
        layout="wide",
        initial_sidebar_state="collapsed" if is_sidebar_collapsed() else "expanded",
    )
    try:
        settings = load_settings()
    except SupabaseConfigError as exc:
        st.error(str(exc))
        st.stop()
    configure_logging(settings)

    login(settings.club_name)
    subscribe_auth_changes()

    if not st.session_state.get("current_page"):
        st.session_state["current_page"] = _initial_page()
    current = st.session_state["current_page"]

    build_sidebar(
        current=current,
        nav_keys=NAV_KEYS,
        nav_labels=NAV_LABELS,
        nav_icons=NAV_ICONS,
        app_title=settings.club_name or APP_TITLE,
        app_tagline=APP_TAGLINE,
        app_version=APP_VERSION,
        on_navigate=set_page,
        logout=logout,
    )

    page_func = PAGE_FUNCS.get(current)
    if page_func is None:
        st.error("Page not found.")
        return
    logger.debug("[App] rendering {}", current)
    page_func()


if __name__ == "__main__":
    main()
