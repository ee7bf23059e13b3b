"""Exam portal UI: thin Streamlit front end over ExamService."""
import sys
from datetime import datetime, timezone
from pathlib import Path

# Ensure project root is in path
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import streamlit as st

from db import get_exam_service
from exam_engine.errors import ExamError, InvalidState, NotFound, NotReady

st.set_page_config(page_title="Certification Exams", layout="wide")
st.sidebar.title("Certification Exams")
PAGES = ["Certifications", "Exam", "My Certificates", "Admin"]
default_page = st.query_params.get("page", "Certifications")
if default_page not in PAGES:
    default_page = "Certifications"
page = st.sidebar.radio("Navigate", PAGES, index=PAGES.index(default_page), label_visibility="collapsed")

# Identity comes from the auth layer; here it is just an id in session state
user_id = st.sidebar.text_input("User id", value=st.session_state.get("user_id", ""))
st.session_state["user_id"] = user_id

try:
    service = get_exam_service()
except ValueError as e:
    st.error(f"Could not connect. Check .env (SUPABASE_URL, SUPABASE_KEY). {e}")
    st.stop()


def _go(target: str):
    st.query_params["page"] = target
    st.rerun()


# ----- Certifications -----
if page == "Certifications":
    st.header("Certifications")
    try:
        certifications = service.active_certifications()
    except ExamError as e:
        st.error(f"Could not load certifications: {e}")
        st.stop()
    if not certifications:
        st.info("No active certifications.")
    for cert in certifications:
        with st.container(border=True):
            st.subheader(cert.name)
            st.caption(f"{cert.provider} · {cert.duration} min · {cert.total_questions} questions · pass {cert.passing_score}%")
            if cert.description:
                st.write(cert.description)
            if st.button("Start exam", key=f"start_{cert.id}", disabled=not user_id):
                try:
                    started = service.start_exam(cert.id, user_id)
                except NotReady as e:
                    st.error(f"Cannot start exam for {cert.name!r}:")
                    for issue in e.issues:
                        st.write(f"- {issue}")
                except ExamError as e:
                    st.error(str(e))
                else:
                    st.session_state["session_id"] = started.session.id
                    st.session_state["current_q"] = 0
                    st.session_state["tick_at"] = datetime.now(timezone.utc)
                    st.session_state.pop("result", None)
                    _go("Exam")

# ----- Exam -----
elif page == "Exam":
    st.header("Exam")
    result = st.session_state.get("result")
    if result is not None:
        st.metric("Score", f"{result.score}%")
        if result.passed:
            st.success("Passed!")
            if result.certificate:
                st.write(f"Certificate #: {result.certificate.certificate_number}")
            elif result.certificate_error:
                st.warning(f"Your pass is recorded, but the certificate could not be issued yet: {result.certificate_error}")
        else:
            st.error("Not passed.")
        if st.button("Back to certifications"):
            st.session_state.pop("result", None)
            _go("Certifications")
        st.stop()

    session_id = st.session_state.get("session_id")
    if not session_id:
        st.info("Start an exam from the Certifications page.")
        st.stop()

    try:
        exam = service.resume_exam(session_id, user_id)
    except (NotFound, InvalidState) as e:
        st.error(str(e))
        st.session_state.pop("session_id", None)
        st.stop()

    # Countdown: persist elapsed time on every rerun
    now = datetime.now(timezone.utc)
    elapsed = int((now - st.session_state.get("tick_at", now)).total_seconds())
    remaining = max(0, exam.session.time_remaining - elapsed)
    service.update_timer(session_id, remaining)
    st.session_state["tick_at"] = now
    m, s = divmod(remaining, 60)
    st.sidebar.metric("Time left", f"{m}:{s:02d}")

    questions = exam.questions
    n = len(questions)
    st.sidebar.progress(len(exam.answers) / n if n else 0)
    st.sidebar.caption(f"{len(exam.answers)}/{n} answered")

    if remaining <= 0:
        st.session_state["result"] = service.complete_exam(session_id)
        st.session_state.pop("session_id", None)
        st.rerun()

    idx = min(st.session_state.get("current_q", 0), n - 1)
    q = questions[idx]
    labels = {o.id: o.option_text for o in q.answer_options}
    previous = exam.answers.get(q.id, [])

    st.subheader(f"Question {idx + 1} of {n}")
    st.write(q.question_text)
    if q.is_single_answer:
        ids = list(labels)
        choice = st.radio(
            "Choose one:",
            ids,
            format_func=lambda i: labels[i],
            index=ids.index(previous[0]) if previous and previous[0] in ids else None,
            key=f"q_{q.id}",
        )
        selected = [choice] if choice else []
    else:
        selected = st.multiselect("Choose all that apply:", list(labels), default=previous,
                                  format_func=lambda i: labels[i], key=f"q_{q.id}")

    if selected and sorted(selected) != sorted(previous):
        service.submit_answer(session_id, q.id, selected)

    col1, col2, col3 = st.columns([1, 1, 2])
    with col1:
        if st.button("Previous") and idx > 0:
            st.session_state["current_q"] = idx - 1
            st.rerun()
    with col2:
        if st.button("Next") and idx < n - 1:
            st.session_state["current_q"] = idx + 1
            st.rerun()
    with col3:
        if st.button("Submit exam", type="primary"):
            st.session_state["result"] = service.complete_exam(session_id)
            st.session_state.pop("session_id", None)
            st.rerun()

# ----- My Certificates -----
elif page == "My Certificates":
    st.header("My Certificates")
    if not user_id:
        st.info("Enter your user id in the sidebar.")
        st.stop()
    certificates = service.user_certificates(user_id)
    if not certificates:
        st.info("No certificates yet.")
    for cert in certificates:
        st.write(f"**{cert.certificate_number}** · issued {cert.issued_date} · verification `{cert.verification_hash[:16]}…`")

# ----- Admin -----
elif page == "Admin":
    st.header("Question bank check")
    certifications = service.active_certifications()
    names = {c.id: c.name for c in certifications}
    cert_id = st.selectbox("Certification", list(names), format_func=lambda i: names[i]) if names else None
    if cert_id and st.button("Validate"):
        report = service.validate_bank(cert_id)
        if report.is_valid:
            st.success(f"Exam-ready: {len(report.valid_questions)}/{report.total_questions} questions valid")
        else:
            st.error("Not exam-ready")
        for issue in report.issues:
            st.write(f"- {issue}")

    st.header("Revoke certificate")
    revoke_id = st.text_input("Certificate id")
    if revoke_id and st.button("Revoke"):
        try:
            service.revoke_certificate(revoke_id)
            st.success("Revoked")
        except NotFound as e:
            st.error(str(e))
