# routes/quiz_routes.py - handles question navigation and answer submission
from flask import Blueprint, current_app, flash, redirect, render_template, request, session, url_for

from services.flow import SelectAnswer, ShowExplanation, Stage, SubmitAnswer
from services.session_helper import TELEMETRY_KEY, SessionHelper, endpoint_for
from services.statistics import StatisticsAggregator
from services.telemetry import capture_environment

quiz_bp = Blueprint("quiz", __name__)


def _parse_answer(raw):
    if raw is None or not str(raw).strip().isdigit():
        return None
    return int(raw)


@quiz_bp.route("/question", methods=["GET", "POST"])
def show_question():
    """Display one question at a time and handle answer submission."""
    aggregator = StatisticsAggregator.from_app(current_app)
    controller = SessionHelper.load_controller(session, aggregator=aggregator)
    if controller.state.stage is not Stage.IN_PROGRESS:
        return redirect(url_for(endpoint_for(controller.state.stage)))

    if request.method == "POST":
        raw_answer = request.form.get("answer")
        if raw_answer is not None:
            answer = _parse_answer(raw_answer)
            if answer is None:
                flash("Please choose one of the listed answers.", "error")
                return redirect(url_for("quiz.show_question"))
            if not SessionHelper.dispatch(session, controller, SelectAnswer(answer)):
                return redirect(url_for("quiz.show_question"))

        # Show the same question with its explanation; the answer stays selected
        if request.form.get("show_explanation"):
            SessionHelper.dispatch(session, controller, ShowExplanation())
            return redirect(url_for("quiz.show_question"))

        if SessionHelper.dispatch(session, controller, SubmitAnswer()):
            state = controller.state
            if state.stage is Stage.COMPLETED:
                session[TELEMETRY_KEY] = capture_environment(request)
                current_app.logger.info(
                    "quiz completed score=%s/%s committed=%s",
                    state.outcome.score,
                    state.outcome.total_questions,
                    getattr(state.aggregation, "committed", None),
                )
                # PRG: redirect to the result page so a refresh cannot resubmit
                return redirect(url_for("result.result_page"))
        return redirect(url_for("quiz.show_question"))

    quiz_session = controller.state.session
    current_index = quiz_session.current_index
    question = controller.quiz[current_index]
    total_questions = len(controller.quiz)
    current_percentage = ((current_index + 1) / total_questions) * 100
    previous_percentage = (current_index / total_questions) * 100 if current_index > 0 else 0

    return render_template(
        "quiz.html",
        question=question,
        index=current_index + 1,
        total=total_questions,
        current_percentage=current_percentage,
        previous_percentage=previous_percentage,
        selected_answer=quiz_session.selection,
        show_explanation=quiz_session.explanation_shown,
        is_last=current_index == total_questions - 1,
    )
