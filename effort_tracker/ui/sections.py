from __future__ import annotations
import logging
from datetime import date
from typing import Optional

import pandas as pd
import streamlit as st

from ..context import COMMIT_KEY, AppContext, rating_key
from ..errors import AuthorizationError, DuplicateActionError, EffortTrackerError, StoreError
from ..models import CommittedEntry
from ..ratings import Partition, RatedEntry
from ..validation import parse_task_date
from .state import sign_in, sign_out

logger = logging.getLogger(__name__)


def toast(msg: str) -> None:
    st.toast(msg)

def sign_in_ui():
    st.subheader("Welcome back")
    with st.form("sign_in"):
        identity = st.text_input("Email")
        secret = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in", type="primary")
    if submitted:
        who = st.session_state.authenticator.sign_in(identity, secret)
        if who is None:
            st.error("Invalid credentials. Please try again.")
            return
        sign_in(who)
        toast("Successfully logged in!")
        st.rerun()

def sidebar_ui(ctx: AppContext):
    with st.sidebar:
        st.caption(f"Signed in as **{ctx.identity}**")
        labels = {"entry": "Data Entry", "review": f"Review & Submit ({ctx.staging.count()})"}
        if ctx.is_admin:
            labels["admin"] = "Admin"
        choice = st.radio("Navigation", list(labels), index=list(labels).index(ctx.view) if ctx.view in labels else 0,
                          format_func=labels.get)
        if choice != ctx.view:
            ctx.navigate(choice)
        if st.button("Logout", use_container_width=True):
            sign_out()
            toast("Successfully logged out!")
            st.rerun()

# ----------------------------- entry form ---------------------------------

def _bind(ctx: AppContext, local_id: str, field: str, key: str):
    def _on_change():
        value = st.session_state.get(key)
        if field == "task_date":
            value = value.isoformat() if isinstance(value, date) else ""
        ctx.staging.update(local_id, field, value)
    return _on_change

def _field_error(msg: Optional[str]):
    if msg:
        st.caption(f":red[{msg}]")

def _entry_card(ctx: AppContext, index: int, entry) -> None:
    policy = ctx.staging.policy
    errors = ctx.staging.errors_for(index)
    lid = entry.local_id
    with st.container(border=True):
        head_l, head_r = st.columns([0.88, 0.12])
        with head_l:
            st.markdown(f"**Entry {index + 1}**")
        with head_r:
            if st.button("Remove", key=f"remove_{lid}"):
                ctx.staging.remove(lid)
                st.rerun()

        c1, c2, c3, c4, c5 = st.columns([0.24, 0.22, 0.14, 0.14, 0.26])
        with c1:
            k = f"deal_name_{lid}"
            st.text_input("Deal name *", value=entry.deal_name, max_chars=policy.max_deal_name_length,
                          key=k, on_change=_bind(ctx, lid, "deal_name", k))
            _field_error(errors.get("deal_name"))
        with c2:
            k = f"department_{lid}"
            options = [""] + list(policy.departments)
            st.selectbox("Department *", options,
                         index=options.index(entry.department) if entry.department in options else 0,
                         key=k, on_change=_bind(ctx, lid, "department", k))
            _field_error(errors.get("department"))
        with c3:
            k = f"type_{lid}"
            options = [""] + list(policy.entry_types)
            st.selectbox("Type *", options,
                         index=options.index(entry.type) if entry.type in options else 0,
                         key=k, on_change=_bind(ctx, lid, "type", k))
            _field_error(errors.get("type"))
        with c4:
            k = f"hours_worked_{lid}"
            st.text_input("Hours *", value=entry.hours_worked, placeholder="0.0",
                          key=k, on_change=_bind(ctx, lid, "hours_worked", k))
            _field_error(errors.get("hours_worked"))
        with c5:
            k = f"task_date_{lid}"
            st.date_input("Task date *", value=parse_task_date(entry.task_date),
                          min_value=policy.min_date, max_value=date.today(),
                          key=k, on_change=_bind(ctx, lid, "task_date", k))
            _field_error(errors.get("task_date"))

        k = f"description_{lid}"
        st.text_area("Description", value=entry.description, max_chars=policy.max_description_length,
                     height=80, key=k, on_change=_bind(ctx, lid, "description", k))
        _field_error(errors.get("description"))

def entry_form_ui(ctx: AppContext):
    head_l, head_r = st.columns([0.8, 0.2])
    with head_l:
        st.subheader("Analyst Effort Entry")
        st.caption("Record your work details and time allocation")
    with head_r:
        if st.button("Add Entry", use_container_width=True):
            ctx.staging.add()
            st.rerun()

    entries = ctx.staging.entries()
    if not entries:
        st.caption("No entries staged. Use «Add Entry» to start.")
    if ctx.staging.all_errors():
        st.error("Please fix the validation errors before continuing")
    for i, entry in enumerate(entries):
        _entry_card(ctx, i, entry)

    if entries and st.button("Review entries", type="primary"):
        if ctx.staging.commit_all().ok:
            ctx.navigate("review")
        st.rerun()

# ----------------------------- review & submit ----------------------------

def staged_frame(ctx: AppContext) -> pd.DataFrame:
    rows = [
        {
            "Deal": e.deal_name,
            "Department": e.department,
            "Type": e.type,
            "Hours": e.hours_worked,
            "Task date": e.task_date,
            "Description": e.description,
        }
        for e in ctx.staging.entries()
    ]
    return pd.DataFrame(rows, columns=["Deal", "Department", "Type", "Hours", "Task date", "Description"])

def review_ui(ctx: AppContext):
    st.subheader("Review Entries")
    st.caption("Review your entries before submitting to database")

    m1, m2 = st.columns(2)
    m1.metric("Total Entries", ctx.staging.count())
    m2.metric("Total Hours", f"{ctx.staging.total_hours():.1f}")

    if ctx.staging.count() == 0:
        st.info("No entries to review yet.")
        if st.button("Back to Form"):
            ctx.navigate("entry")
            st.rerun()
        return

    st.dataframe(staged_frame(ctx), hide_index=True, width="stretch")
    by_dept = ctx.staging.hours_by_department()
    if by_dept:
        st.bar_chart(pd.Series(by_dept, name="Hours"))

    errors = ctx.staging.all_errors()
    for idx, errs in sorted(errors.items()):
        st.error(f"Entry {idx + 1}: " + "; ".join(errs.values()))

    c1, c2 = st.columns([1, 1])
    with c1:
        if st.button("Back to Form"):
            ctx.navigate("entry")
            st.rerun()
    with c2:
        st.button("Submit to Database", type="primary", disabled=ctx.guard.is_busy(COMMIT_KEY),
                  on_click=_claim, args=(ctx, COMMIT_KEY))
        if ctx.guard.is_busy(COMMIT_KEY):
            try:
                with st.spinner("Submitting entries..."):
                    result = st.session_state.committer.commit(ctx.staging, ctx.identity)
            finally:
                ctx.guard.release(COMMIT_KEY)
            if not result.ok:
                st.error(result.message or "Failed to submit entries. Please try again.")
                return
            toast(f"{result.committed} {'entry' if result.committed == 1 else 'entries'} saved")
            ctx.staging.add()
            ctx.navigate(result.next_view or "entry")
            st.rerun()

# ----------------------------- admin ---------------------------------------

def _submission_frame(entries) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Analyst": e.analyst_name,
                "Deal": e.deal_name,
                "Department": e.department,
                "Type": e.type,
                "Hours": e.hours_worked,
                "Task date": e.task_date.isoformat(),
                "Submitted": e.submitted_at.strftime("%Y-%m-%d %H:%M"),
            }
            for e in entries
        ],
        columns=["Analyst", "Deal", "Department", "Type", "Hours", "Task date", "Submitted"],
    )

def rating_confirmation_widget(ctx: AppContext, entry: CommittedEntry, value: int):
    with st.container(border=True):
        st.warning(f"Submit a rating of {value} for {entry.analyst_name}'s work on {entry.deal_name}? "
                   "This will remove the submission from your pending list.")
        c1, c2 = st.columns(2)
        with c1:
            key = rating_key(entry.id)
            st.button("Yes, Submit Rating", type="primary", key=f"confirm_{entry.id}",
                      disabled=ctx.guard.is_busy(key), on_click=_claim, args=(ctx, key))
            if ctx.guard.is_busy(key):
                _run_rating(ctx, entry.id, lambda: st.session_state.rating_engine.rate(ctx.identity, entry, value))
                st.session_state.confirm_rating = None
                st.rerun()
        with c2:
            if st.button("Cancel", key=f"cancel_{entry.id}"):
                st.session_state.confirm_rating = None
                st.rerun()

def _claim(ctx: AppContext, key: str) -> None:
    try:
        ctx.guard.acquire(key)
    except DuplicateActionError:
        logger.info("Ignoring repeated click for %s while it is in progress", key)

def _run_rating(ctx: AppContext, submission_id: int, action) -> None:
    try:
        with st.spinner("Saving rating..."):
            outcome = action()
    except AuthorizationError:
        st.error("Access denied")
    except StoreError as e:
        st.error(f"Failed to submit rating: {e}")
    except EffortTrackerError as e:
        st.error(str(e))
    else:
        toast("Rating submitted successfully!" if outcome.transition == "inserted" else "Rating updated")
    finally:
        ctx.guard.release(rating_key(submission_id))

def _pending_row(ctx: AppContext, entry: CommittedEntry):
    rr = st.session_state.rating_engine.rating_range
    c1, c2, c3 = st.columns([0.7, 0.15, 0.15])
    with c1:
        st.markdown(f"**{entry.deal_name}** · {entry.analyst_name} · {entry.department} · {entry.type} · "
                    f"{entry.hours_worked:g}h · {entry.task_date.isoformat()}")
        if entry.description:
            st.caption(entry.description)
    with c2:
        value = st.number_input("Rating", min_value=rr.low, max_value=rr.high, step=1, value=None,
                                placeholder=f"{rr.low}-{rr.high}", key=f"rate_{entry.id}",
                                label_visibility="collapsed")
    with c3:
        if st.button("Submit", key=f"submit_rate_{entry.id}",
                     disabled=value is None or ctx.guard.is_busy(rating_key(entry.id))):
            st.session_state.confirm_rating = (entry.id, int(value))
    pending = st.session_state.get("confirm_rating")
    if pending and pending[0] == entry.id:
        rating_confirmation_widget(ctx, entry, pending[1])

def _rated_row(ctx: AppContext, item: RatedEntry):
    rr = st.session_state.rating_engine.rating_range
    entry = item.entry
    c1, c2, c3 = st.columns([0.7, 0.15, 0.15])
    with c1:
        others = ", ".join(f"{r.rating} ({r.rated_by})" for r in item.ratings)
        st.markdown(f"**{entry.deal_name}** · {entry.analyst_name} · {entry.department} · ratings: {others}")
    with c2:
        current = item.own_rating.rating if item.own_rating else None
        value = st.number_input("Your rating", min_value=rr.low, max_value=rr.high, step=1, value=current,
                                key=f"edit_{entry.id}", label_visibility="collapsed")
    with c3:
        label = "Update" if item.own_rating else "Rate"
        key = rating_key(entry.id)
        st.button(label, key=f"update_{entry.id}",
                  disabled=value is None or value == current or ctx.guard.is_busy(key),
                  on_click=_claim, args=(ctx, key))
        if ctx.guard.is_busy(key):
            engine = st.session_state.rating_engine
            if item.own_rating:
                rid = item.own_rating.id
                _run_rating(ctx, entry.id, lambda: engine.update(ctx.identity, rid, int(value)))
            else:
                _run_rating(ctx, entry.id, lambda: engine.rate(ctx.identity, entry, int(value)))
            st.rerun()

def admin_ui(ctx: AppContext):
    try:
        part: Partition = st.session_state.rating_engine.reconcile(ctx.identity)
    except AuthorizationError:
        st.error("Access denied")
        return
    except StoreError as e:
        st.error(f"Failed to load submissions: {e}")
        return

    rr = st.session_state.rating_engine.rating_range
    st.subheader("Admin Dashboard - Pending Ratings")
    st.caption(f"Review and rate pending analyst submissions ({rr.low}-{rr.high} scale)")
    m1, m2 = st.columns(2)
    m1.metric("Pending Submissions", part.pending_count)
    m2.metric("Rated Submissions", part.rated_count)

    tab_pending, tab_rated, tab_summary = st.tabs(["Pending", "Rated", "Summary"])
    with tab_pending:
        if not part.unrated:
            st.info("All submissions have been rated or there are no submissions to review.")
        for entry in part.unrated:
            _pending_row(ctx, entry)
    with tab_rated:
        if not part.rated:
            st.caption("No ratings yet.")
        for item in part.rated:
            _rated_row(ctx, item)
    with tab_summary:
        everything = list(part.unrated) + [r.entry for r in part.rated]
        st.dataframe(_submission_frame(everything), hide_index=True, width="stretch")
        by_dept = part.hours_by_department()
        if by_dept:
            st.bar_chart(pd.Series(by_dept, name="Hours"))
