# app.py
# Streamlit page for the loan ledger: login, totals, warnings, table, forms.
# All rules live in ledger.py; this file only wires widgets to LoanLedger.
from __future__ import annotations

import logging
from datetime import date

import streamlit as st

from contract_ids import fmt_contract_id
from db import authed_client, load_settings, public_client
from dashboard import history_frame, loans_frame, warnings_frame
from errors import LedgerError, describe_failure
from gateway import LoanGateway
from ledger import LoanLedger, LoanTerms
from log_setup import setup_logging
from rbac import actor_from_session
from schema_adapter import LoanStatus, StoreProfile
from ui_state import finish_write, take_flash


# -------------------------
# CONFIG
# -------------------------
APP_BRAND = "Loan Ledger"
APP_VERSION = "v1.0"

settings = load_settings()
setup_logging(settings.log_level, settings.log_format)
log = logging.getLogger("app")

st.set_page_config(page_title=f"{APP_BRAND} • Contracts", layout="wide", page_icon="📊")

st.markdown(
    """
<style>
.card{ border: 1px solid rgba(0,0,0,0.10); border-radius: 14px; padding: 12px; }
.kpi-title{ font-weight: 800; font-size: .82rem; opacity: .75; }
.kpi-value{ font-weight: 950; font-size: 1.30rem; margin-top: 4px; }
</style>
""",
    unsafe_allow_html=True,
)


def money(x):
    try:
        return f"{float(x):,.0f}"
    except (TypeError, ValueError):
        return str(x)


def kpi(title, value):
    st.markdown(
        f'<div class="card"><div class="kpi-title">{title}</div><div class="kpi-value">{value}</div></div>',
        unsafe_allow_html=True,
    )


def show_failure(action: str, e: Exception):
    log.error("%s failed: %s", action, e)
    st.error(describe_failure(action, e))


def contract_picker(ledger: LoanLedger, label: str, key: str, only_active: bool = False):
    loans = [
        l for l in ledger.loans
        if not only_active or l.get("status") == LoanStatus.ACTIVE.value
    ]
    if not loans:
        st.info("No matching contracts.")
        return None
    labels = {f"#{fmt_contract_id(l['contractId'])} • {l.get('name') or '-'}": l["contractId"] for l in loans}
    pick = st.selectbox(label, list(labels), key=key)
    return labels[pick]


def terms_form(key: str, loan: dict | None = None) -> LoanTerms | None:
    loan = loan or {}
    with st.form(key, clear_on_submit=loan == {}):
        c1, c2, c3 = st.columns(3)
        name = c1.text_input("Name", value=loan.get("name", ""))
        phone = c2.text_input("Phone", value=loan.get("phone", ""))
        imei = c3.text_input("IMEI", value=loan.get("imei", ""))
        c4, c5 = st.columns(2)
        loan_amount = c4.number_input("Loan amount", min_value=0, step=100_000, value=int(loan.get("loanAmount") or 0))
        given_amount = c5.number_input("Given amount", min_value=0, step=100_000, value=int(loan.get("givenAmount") or 0))
        c6, c7, c8 = st.columns(3)
        loan_days = c6.number_input("Loan days", min_value=1, step=1, value=max(int(loan.get("loanDays") or 30), 1))
        pay_interval = c7.number_input("Pay interval (days)", min_value=1, step=1, value=max(int(loan.get("payInterval") or 10), 1))
        try:
            start_default = date.fromisoformat(str(loan.get("startDate") or "")[:10])
        except ValueError:
            start_default = date.today()
        start_date = c8.date_input("Start date", value=start_default)
        ok = st.form_submit_button("Save", use_container_width=True)

    if not ok:
        return None
    return LoanTerms.from_form({
        "name": name,
        "phone": phone,
        "imei": imei,
        "loan_amount": loan_amount,
        "given_amount": given_amount,
        "loan_days": loan_days,
        "pay_interval": pay_interval,
        "start_date": start_date,
    })


# -------------------------
# SUPABASE PUBLIC CLIENT (for auth)
# -------------------------
if not settings.is_configured:
    st.error("Missing SUPABASE_URL / SUPABASE_ANON_KEY (env vars or Streamlit Secrets).")
    st.stop()

sb_public = public_client(settings)

if "session" not in st.session_state:
    st.session_state.session = None


# -------------------------
# AUTH UI
# -------------------------
with st.sidebar:
    st.markdown(f"### 📊 {APP_BRAND}")

    if st.session_state.session is None:
        email = st.text_input("Email", key="auth_email")
        password = st.text_input("Password", type="password", key="auth_pass")
        if st.button("Login", use_container_width=True, key="auth_login_btn"):
            try:
                res = sb_public.auth.sign_in_with_password({"email": email, "password": password})
                st.session_state.session = res.session
                st.session_state.pop("ledger", None)
                st.rerun()
            except Exception as e:
                st.error(f"Login failed: {e}")
    else:
        st.success(f"Signed in: {st.session_state.session.user.email}")
        if st.button("Logout", use_container_width=True, key="auth_logout_btn"):
            try:
                sb_public.auth.sign_out()
            except Exception as e:
                st.warning(f"Sign out call failed: {e}")
            st.session_state.session = None
            st.session_state.pop("ledger", None)
            st.rerun()

if st.session_state.session is None:
    st.info("Please login from the sidebar to see your loan contracts.")
    st.stop()


# -------------------------
# AFTER LOGIN
# -------------------------
actor = actor_from_session(st.session_state.session)

if "ledger" not in st.session_state:
    client = authed_client(settings.supabase_url, settings.supabase_anon_key, st.session_state.session)
    gateway = LoanGateway(client, schema=settings.schema, table=settings.table, profile=StoreProfile())
    ledger = LoanLedger(gateway, actor=actor)
    try:
        ledger.load()
    except LedgerError as e:
        show_failure("load", e)
    st.session_state.ledger = ledger

ledger: LoanLedger = st.session_state.ledger
today = date.today()

st.header(f"{APP_BRAND} {APP_VERSION}")

flash = take_flash()
if flash:
    st.success(flash)

if st.button("Reload", key="reload_btn"):
    try:
        ledger.load()
    except LedgerError as e:
        show_failure("load", e)

k = st.columns(4)
with k[0]: kpi("Total lent", money(ledger.total_loan_amount()))
with k[1]: kpi("Contracts", str(len(ledger.loans)))
with k[2]: kpi("Active", str(sum(1 for l in ledger.loans if l.get("status") == LoanStatus.ACTIVE.value)))
with k[3]: kpi("Naming mode", ledger.gateway.profile.mode.value)

# -------------------------
# WARNINGS
# -------------------------
df_w = warnings_frame(ledger.loans, today=today, soon_days=settings.soon_days)
if not df_w.empty:
    st.warning(f"⚠️ {len(df_w)} contract(s) due soon or overdue")
    for w in df_w.to_dict("records"):
        (st.error if w["kind"] == "overdue" else st.warning)(w["text"])

# -------------------------
# LEDGER TABLE
# -------------------------
df = loans_frame(ledger.loans, today=today, soon_days=settings.soon_days)
st.dataframe(df.drop(columns=["contract_id"]), use_container_width=True, hide_index=True)
st.download_button(
    "Download CSV",
    df.to_csv(index=False).encode("utf-8"),
    file_name=f"loans_{today.isoformat()}.csv",
    mime="text/csv",
)

# -------------------------
# ACTIONS
# -------------------------
tab_new, tab_pay, tab_edit, tab_close, tab_wipe = st.tabs(
    ["New contract", "Record payment", "Edit", "Close", "Delete all"]
)

with tab_new:
    terms = terms_form("loan_create")
    if terms is not None:
        try:
            created = ledger.create(terms)
            finish_write(f"Contract #{fmt_contract_id(created.get('contractId'))} saved.")
        except LedgerError as e:
            show_failure("create", e)

with tab_pay:
    cid = contract_picker(ledger, "Contract", key="pay_pick", only_active=True)
    if cid is not None:
        with st.form("loan_pay", clear_on_submit=True):
            amount = st.number_input("Amount", min_value=0, step=50_000, value=0)
            paid_on = st.date_input("Date", value=today)
            ok = st.form_submit_button("Confirm payment", use_container_width=True)
        if ok:
            try:
                updated = ledger.apply_payment(cid, amount, paid_on)
                finish_write(f"Payment recorded. Remaining {money(updated.get('repayAmount'))}.")
            except LedgerError as e:
                show_failure("payment", e)
        loan = ledger.find(cid)
        if loan:
            st.dataframe(history_frame(loan), use_container_width=True, hide_index=True)

with tab_edit:
    cid = contract_picker(ledger, "Contract", key="edit_pick")
    if cid is not None:
        terms = terms_form("loan_edit", ledger.find(cid))
        if terms is not None:
            try:
                ledger.edit(cid, terms)
                finish_write("Contract updated.")
            except LedgerError as e:
                show_failure("edit", e)

with tab_close:
    cid = contract_picker(ledger, "Contract", key="close_pick")
    if cid is not None and st.button("Close contract", key="close_btn"):
        try:
            ledger.close(cid)
            finish_write(f"Contract #{fmt_contract_id(cid)} closed.")
        except LedgerError as e:
            show_failure("close", e)

with tab_wipe:
    sure = st.checkbox("I understand this deletes every contract I own.", key="wipe_sure")
    if st.button("Delete all contracts", key="wipe_btn", disabled=not sure):
        try:
            ledger.delete_all()
            finish_write("All contracts deleted.")
        except LedgerError as e:
            show_failure("delete", e)
