# services/session_helper.py - load/save the per-browser flow state
from flask import current_app, flash

from services.errors import TransitionRefused
from services.flow import (
    FlowController,
    FlowState,
    SelectAnswer,
    Stage,
    Start,
    SubmitAnswer,
    TermsDecision,
)
from services.quiz_bank import PRIVACY_QUIZ

FLOW_KEY = "flow"
TELEMETRY_KEY = "telemetry"

STAGE_ENDPOINTS = {
    Stage.LANDING: "main.index",
    Stage.IDLE: "main.index",
    Stage.CONSENT_PENDING: "main.index",
    Stage.TERMS_PENDING: "main.terms",
    Stage.IN_PROGRESS: "quiz.show_question",
    Stage.COMPLETED: "result.result_page",
}

REFUSAL_MESSAGES = {
    Start: "Your quiz is already under way.",
    SelectAnswer: "Please choose one of the listed answers.",
    SubmitAnswer: "Please select an answer before continuing.",
    TermsDecision: "There is no terms decision pending.",
}


def endpoint_for(stage: Stage) -> str:
    """Page that renders the given stage."""
    return STAGE_ENDPOINTS[stage]


class SessionHelper:
    @staticmethod
    def load_controller(session, aggregator=None, quiz=PRIVACY_QUIZ):
        state = FlowState.from_dict(session.get(FLOW_KEY))
        return FlowController(quiz, aggregator=aggregator, state=state)

    @staticmethod
    def save_controller(session, controller):
        session[FLOW_KEY] = controller.state.to_dict()

    @staticmethod
    def dispatch(session, controller, event) -> bool:
        """Apply ``event`` and persist the new state; flash and keep the old state when refused."""
        try:
            controller.dispatch(event)
        except TransitionRefused as e:
            current_app.logger.info("flow event refused: %s", e)
            flash(REFUSAL_MESSAGES.get(type(event), "That action is not available right now."), "error")
            return False
        SessionHelper.save_controller(session, controller)
        return True

    @staticmethod
    def reset(session):
        session.pop(FLOW_KEY, None)
        session.pop(TELEMETRY_KEY, None)
