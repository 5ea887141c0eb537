from __future__ import annotations
import streamlit as st

from ..auth import build_authenticator, build_policy
from ..commit import BatchCommitter
from ..context import end_session, start_session
from ..db import init_db, make_engine
from ..ratings import RatingEngine, RatingRange
from ..repository import SqlStore
from ..validation import ValidationPolicy


def init_session_state() -> None:
    if "db_initialized" not in st.session_state:
        engine = make_engine()
        init_db(engine)
        store = SqlStore(engine)
        authorization = build_policy()
        st.session_state.store = store
        st.session_state.validation_policy = ValidationPolicy.from_settings()
        st.session_state.authenticator = build_authenticator()
        st.session_state.authorization = authorization
        st.session_state.committer = BatchCommitter(store)
        st.session_state.rating_engine = RatingEngine(store, authorization, RatingRange.from_settings())
        st.session_state.db_initialized = True

    st.session_state.setdefault("ctx", None)
    st.session_state.setdefault("confirm_rating", None)


def sign_in(identity: str) -> None:
    st.session_state.ctx = start_session(
        identity,
        st.session_state.validation_policy,
        is_admin=st.session_state.authorization.is_authorized(identity),
    )


def sign_out() -> None:
    end_session(st.session_state.get("ctx"))
    st.session_state.ctx = None
    st.session_state.confirm_rating = None
