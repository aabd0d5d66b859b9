"""Functional page-by-page verification script.
Run inside the virtual environment:
  python functional_check.py
Outputs tuple of (status_code, heuristic_content_ok) per route.
"""

from app import create_app
from services.quiz_bank import PRIVACY_QUIZ


def run_checks():
    app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:"})
    results = {}
    with app.test_client() as c:
        # Home
        r = c.get("/")
        results["home"] = (r.status_code, "Cookie" in r.get_data(as_text=True))

        # Cookie banner decision
        ck = c.post("/consent/cookies", data={"decision": "accept"}, follow_redirects=True)
        results["cookie_consent"] = (ck.status_code, "Accept Cookies" not in ck.get_data(as_text=True))

        # Start -> terms dialog
        st = c.post("/start", follow_redirects=True)
        results["start_quiz"] = (st.status_code, "Terms of Service" in st.get_data(as_text=True))

        # Accept terms -> first question
        tm = c.post("/terms", data={"decision": "accept"}, follow_redirects=True)
        results["terms_accept"] = (tm.status_code, PRIVACY_QUIZ[0].prompt in tm.get_data(as_text=True))

        # Answer every question correctly; the last submission lands on the result page
        last_resp = None
        for question in PRIVACY_QUIZ:
            last_resp = c.post(
                "/question", data={"answer": str(question.correct_index)}, follow_redirects=True
            )
        body = last_resp.get_data(as_text=True) if last_resp is not None else ""
        results["quiz_finish"] = (
            getattr(last_resp, "status_code", 0),
            f"{len(PRIVACY_QUIZ)}/{len(PRIVACY_QUIZ)}" in body,
        )

        # Statistics persisted for this session
        stats = c.get("/api/statistics")
        data = stats.get_json() or {}
        results["stats_saved"] = (
            stats.status_code,
            data.get("totals", {}).get("total_users") == 1,
        )

        # Restart
        rs = c.post("/restart", follow_redirects=True)
        results["restart"] = (rs.status_code, "Start Privacy Quiz" in rs.get_data(as_text=True))

        # Health
        hz = c.get("/healthz")
        results["healthz"] = (hz.status_code, bool((hz.get_json() or {}).get("db")))

        # 404
        notf = c.get("/no_such_page_xyz")
        results["404"] = (notf.status_code, notf.status_code == 404)

        # Security headers
        home2 = c.get("/")
        results["security_headers"] = (
            200,
            bool(home2.headers.get("Content-Security-Policy"))
            and home2.headers.get("X-Frame-Options") == "DENY",
        )

    return results


if __name__ == "__main__":
    for k, v in run_checks().items():
        print(f"{k}: {v}")
