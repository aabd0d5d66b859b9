# routes/result_routes.py - result display and restart
from flask import Blueprint, current_app, redirect, render_template, session, url_for

from services.flow import Restart, Stage
from services.scoring import score_band
from services.session_helper import TELEMETRY_KEY, SessionHelper, endpoint_for
from services.telemetry import UNKNOWN

result_bp = Blueprint("result", __name__)


@result_bp.route("/result")
def result_page():
    """Show the outcome, consent choices, collected data and site-wide statistics."""
    controller = SessionHelper.load_controller(session)
    state = controller.state
    if state.stage is not Stage.COMPLETED:
        return redirect(url_for(endpoint_for(state.stage)))

    outcome = state.outcome
    aggregation = state.aggregation
    totals = aggregation.totals if aggregation is not None else None
    site_stats = None
    if totals is not None:
        site_stats = {
            "total_users": totals.total_users,
            "cookie_acceptance": totals.cookie_acceptance_percentage,
            "tos_acceptance": totals.tos_acceptance_percentage,
            "avg_quiz_score": totals.average_score_percentage(outcome.total_questions),
        }

    telemetry = session.get(TELEMETRY_KEY) or {}
    return render_template(
        "result.html",
        outcome=outcome,
        band=score_band(outcome.percentage),
        cookie_consent=state.cookie_consent,
        tos_accepted=state.tos_accepted,
        telemetry=telemetry,
        unknown=UNKNOWN,
        site_stats=site_stats,
        stats_recorded=bool(aggregation is not None and aggregation.committed),
    )


@result_bp.route("/restart", methods=["POST"])
def restart():
    controller = SessionHelper.load_controller(session)
    if SessionHelper.dispatch(session, controller, Restart()):
        session.pop(TELEMETRY_KEY, None)
        current_app.logger.info("session restarted")
    return redirect(url_for(endpoint_for(controller.state.stage)))
