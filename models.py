from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# The aggregate lives in exactly one row; only services.statistics writes it.
STATISTICS_ROW_ID = 1


class SiteStatistics(db.Model):
    __tablename__ = "site_statistics"
    __table_args__ = (
        db.CheckConstraint("total_users >= 0", name="ck_stats_users_nonneg"),
        db.CheckConstraint("total_score_sum >= 0", name="ck_stats_score_nonneg"),
        db.CheckConstraint(
            "cookie_acceptance_count >= 0 AND cookie_acceptance_count <= total_users",
            name="ck_stats_cookie_bounds",
        ),
        db.CheckConstraint(
            "tos_acceptance_count >= 0 AND tos_acceptance_count <= total_users",
            name="ck_stats_tos_bounds",
        ),
        db.CheckConstraint(
            "total_quizzes_taken >= 0 AND total_quizzes_taken <= total_users",
            name="ck_stats_quizzes_bounds",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    total_users = db.Column(db.Integer, default=0, nullable=False)
    cookie_acceptance_count = db.Column(db.Integer, default=0, nullable=False)
    tos_acceptance_count = db.Column(db.Integer, default=0, nullable=False)
    total_score_sum = db.Column(db.Integer, default=0, nullable=False)
    total_quizzes_taken = db.Column(db.Integer, default=0, nullable=False)
    # Row version for the conditional write: UPDATE ... WHERE id = ? AND version = ?
    version = db.Column(db.Integer, nullable=False)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __mapper_args__ = {"version_id_col": version}


class ConsumedAttempt(db.Model):
    """Quiz attempts already folded into the statistics row.

    Inserted in the same transaction as the counter update; the primary key
    makes a second fold of the same attempt fail.
    """

    __tablename__ = "consumed_attempts"

    attempt_id = db.Column(db.String(64), primary_key=True)
    consumed_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
