# routes/main_routes.py - landing page, cookie banner and terms dialog
from flask import Blueprint, current_app, flash, redirect, render_template, request, session, url_for

from services.flow import CookieDecision, DismissTerms, Stage, Start, TermsDecision
from services.session_helper import SessionHelper, endpoint_for

main_bp = Blueprint("main", __name__)

LANDING_PAGE_STAGES = (Stage.LANDING, Stage.IDLE, Stage.CONSENT_PENDING)


@main_bp.route("/", methods=["GET"])
def index():
    """Landing page; shows the cookie banner until a decision is recorded."""
    state = SessionHelper.load_controller(session).state
    if state.stage not in LANDING_PAGE_STAGES:
        return redirect(url_for(endpoint_for(state.stage)))
    return render_template(
        "index.html",
        state=state,
        show_cookie_banner=state.cookie_consent is None,
        consent_prompted=state.stage is Stage.CONSENT_PENDING,
    )


@main_bp.route("/consent/cookies", methods=["POST"])
def cookie_consent():
    decision = request.form.get("decision")
    if decision not in ("accept", "reject"):
        flash("Please accept or reject cookies.", "error")
        return redirect(url_for("main.index"))

    controller = SessionHelper.load_controller(session)
    if SessionHelper.dispatch(session, controller, CookieDecision(decision == "accept")):
        current_app.logger.info("cookie consent recorded accepted=%s", decision == "accept")
    return redirect(url_for(endpoint_for(controller.state.stage)))


@main_bp.route("/start", methods=["POST"])
def start():
    controller = SessionHelper.load_controller(session)
    SessionHelper.dispatch(session, controller, Start())
    if controller.state.stage is Stage.CONSENT_PENDING:
        flash("Please make a cookie choice before starting the quiz.", "info")
    return redirect(url_for(endpoint_for(controller.state.stage)))


@main_bp.route("/terms", methods=["GET", "POST"])
def terms():
    """Terms of service dialog: accept starts the quiz, reject abandons the attempt."""
    controller = SessionHelper.load_controller(session)
    if controller.state.stage is not Stage.TERMS_PENDING:
        return redirect(url_for(endpoint_for(controller.state.stage)))

    if request.method == "GET":
        return render_template("terms.html", state=controller.state)

    decision = request.form.get("decision")
    if decision == "accept":
        event = TermsDecision(True)
    elif decision == "reject":
        event = TermsDecision(False)
    elif decision == "dismiss":
        event = DismissTerms()
    else:
        flash("Please accept or reject the terms.", "error")
        return redirect(url_for("main.terms"))

    if SessionHelper.dispatch(session, controller, event):
        current_app.logger.info("terms decision=%s", decision)
        if decision == "reject":
            flash("You need to accept the terms to take the quiz.", "info")
    return redirect(url_for(endpoint_for(controller.state.stage)))
