# routes/api_routes.py - read-only JSON view of the site-wide statistics
from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from services.quiz_bank import PRIVACY_QUIZ
from services.statistics import StatisticsAggregator

api_bp = Blueprint("api", __name__, url_prefix="/api")


@api_bp.route("/statistics", methods=["GET"])
def statistics():
    """Current totals plus derived percentages. Never writes."""
    try:
        totals = StatisticsAggregator.from_app(current_app).read()
    except SQLAlchemyError as e:
        current_app.logger.error("statistics read failed: %s", str(e))
        return jsonify({"error": "Database error", "message": "Statistics are unavailable"}), 503

    return (
        jsonify(
            {
                "totals": totals.to_dict(),
                "cookie_acceptance_percentage": totals.cookie_acceptance_percentage,
                "tos_acceptance_percentage": totals.tos_acceptance_percentage,
                "average_score_percentage": totals.average_score_percentage(len(PRIVACY_QUIZ)),
            }
        ),
        200,
    )
