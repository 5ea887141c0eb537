from __future__ import annotations
import streamlit as st

from effort_tracker.settings import configure_logging, settings
from effort_tracker.ui.state import init_session_state
from effort_tracker.ui.sections import admin_ui, entry_form_ui, review_ui, sidebar_ui, sign_in_ui

configure_logging()
st.set_page_config(page_title=settings.app_title, layout="wide")
st.title(settings.app_title)

init_session_state()

ctx = st.session_state.ctx
if ctx is None:
    sign_in_ui()
    st.stop()

sidebar_ui(ctx)

if ctx.view == "admin":
    admin_ui(ctx)
elif ctx.view == "review":
    review_ui(ctx)
else:
    entry_form_ui(ctx)
