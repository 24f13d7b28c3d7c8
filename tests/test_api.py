"""HTTP API tests."""

API = "/api/v1"


def _full_marks(seed, student, math, science, english):
    return {
        "student_id": student.id,
        "subjects": [
            {"subject_id": seed.math.id, "max_marks": 100, "marks_obtained": math},
            {"subject_id": seed.science.id, "max_marks": 100, "marks_obtained": science},
            {"subject_id": seed.english.id, "max_marks": 50, "marks_obtained": english},
        ],
    }


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Request-ID"]


def test_missing_school_header_is_rejected(client, seed):
    response = client.get(f"{API}/marks", params={"exam_id": seed.exam.id, "student_id": seed.alice.id})
    assert response.status_code == 422
    assert response.json()["success"] is False


def test_non_numeric_school_header_is_rejected(client, seed):
    response = client.get(
        f"{API}/marks",
        params={"exam_id": seed.exam.id, "student_id": seed.alice.id},
        headers={"X-School-Id": "abc"},
    )
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_single_entry_and_fetch(client, seed, headers):
    response = client.put(
        f"{API}/marks/entry",
        json={
            "exam_id": seed.exam.id,
            "student_id": seed.alice.id,
            "subject_id": seed.math.id,
            "marks_obtained": 92,
        },
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["record"]["grade"] == "A+"
    assert body["record"]["entered_by"] == seed.staff_member.id
    assert body["summary"]["overall_grade"] == "A+"

    response = client.get(
        f"{API}/marks", params={"exam_id": seed.exam.id, "student_id": seed.alice.id}, headers=headers,
    )
    assert response.status_code == 200
    assert [r["subject_name"] for r in response.json()] == ["Mathematics"]


def test_single_entry_above_max_returns_422(client, seed, headers):
    response = client.put(
        f"{API}/marks/entry",
        json={
            "exam_id": seed.exam.id,
            "student_id": seed.alice.id,
            "subject_id": seed.math.id,
            "max_marks": 100,
            "marks_obtained": 120,
        },
        headers=headers,
    )
    assert response.status_code == 422
    assert "cannot exceed" in response.json()["error"]["message"]


def test_unknown_exam_returns_404(client, seed, headers):
    response = client.put(
        f"{API}/marks/entry",
        json={"exam_id": 9999, "student_id": seed.alice.id, "subject_id": seed.math.id, "marks_obtained": 1},
        headers=headers,
    )
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_student_marks_partial_success(client, seed, headers):
    response = client.post(
        f"{API}/marks",
        json={
            "exam_id": seed.exam.id,
            "student_id": seed.alice.id,
            "subjects": [
                {"subject_id": seed.math.id, "max_marks": 100, "marks_obtained": 70},
                {"subject_id": seed.science.id, "max_marks": 100, "marks_obtained": 170},
            ],
        },
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["saved_count"] == 1
    assert body["errors"][0]["row"] == 2


def test_class_bulk_with_absent_marker_saves_valid_rows(client, seed, headers):
    response = client.post(
        f"{API}/marks/bulk",
        json={
            "exam_id": seed.exam.id,
            "class_id": seed.class_a.id,
            "marks": [
                {
                    "student_id": seed.alice.id,
                    "subjects": [
                        {"subject_id": seed.math.id, "max_marks": 100, "marks_obtained": 88},
                        {"subject_id": seed.science.id, "max_marks": 100, "marks_obtained": "AB"},
                    ],
                },
                {
                    "student_id": seed.bala.id,
                    "subjects": [{"subject_id": seed.math.id, "max_marks": 100, "marks_obtained": 64}],
                },
            ],
        },
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["saved_count"] == 2
    assert body["error_count"] == 1
    assert body["errors"][0]["row"] == 2
    assert body["errors"][0]["error"] == "Marks obtained must be a number"


def test_review_flow_over_http(client, seed, headers):
    bulk = {
        "exam_id": seed.exam.id,
        "class_id": seed.class_a.id,
        "marks": [
            _full_marks(seed, seed.alice, 80, 80, 40),
            _full_marks(seed, seed.bala, 90, 90, 45),
        ],
    }
    response = client.post(f"{API}/marks/bulk", json=bulk, headers=headers)
    assert response.status_code == 200
    assert response.json()["saved_count"] == 6

    # Chen has no marks yet
    review = {"exam_id": seed.exam.id, "class_id": seed.class_a.id}
    response = client.post(f"{API}/review/submit", json=review, headers=headers)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "PRECONDITION_FAILED"

    bulk["marks"] = [_full_marks(seed, seed.chen, 60, 60, 30)]
    client.post(f"{API}/marks/bulk", json=bulk, headers=headers)

    response = client.post(f"{API}/review/submit", json=review, headers=headers)
    assert response.status_code == 200
    assert response.json()["updated_count"] == 9

    response = client.get(f"{API}/review/pending", params={"exam_id": seed.exam.id}, headers=headers)
    assert response.json()["total_students"] == 3

    response = client.post(f"{API}/review/approve", json={**review, "remarks": "Verified"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["ranked_count"] == 3

    response = client.get(
        f"{API}/summaries", params={"exam_id": seed.exam.id, "class_id": seed.class_a.id}, headers=headers,
    )
    ranks = [(s["student_id"], s["rank_in_class"]) for s in response.json()]
    assert ranks == [(seed.bala.id, 1), (seed.alice.id, 2), (seed.chen.id, 3)]

    response = client.get(
        f"{API}/terms/calculate",
        params={"class_id": seed.class_a.id, "exam_ids": str(seed.exam.id), "weights": "100"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["data"][0]["student_id"] == seed.bala.id


def test_term_weights_not_summing_to_100(client, seed, headers):
    exam_ids = ",".join(str(e.id) for e in seed.exams)
    response = client.get(
        f"{API}/terms/calculate",
        params={"class_id": seed.class_a.id, "exam_ids": exam_ids, "weights": "20,20,50"},
        headers=headers,
    )
    assert response.status_code == 409


def test_term_query_parsing_errors(client, seed, headers):
    response = client.get(
        f"{API}/terms/calculate",
        params={"class_id": seed.class_a.id, "exam_ids": "1,x", "weights": "50,50"},
        headers=headers,
    )
    assert response.status_code == 422


def test_term_non_finite_weights_are_rejected(client, seed, headers):
    exam_ids = ",".join(str(e.id) for e in seed.exams)
    for weights in ("NaN,40,60", "Infinity,40,60"):
        response = client.get(
            f"{API}/terms/calculate",
            params={"class_id": seed.class_a.id, "exam_ids": exam_ids, "weights": weights},
            headers=headers,
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_stored_term_and_report_card(client, seed, headers):
    response = client.get(
        f"{API}/terms/{seed.term.id}/calculate", params={"class_id": seed.class_a.id}, headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["term_id"] == seed.term.id

    response = client.get(
        f"{API}/terms/report-card",
        params={"student_id": seed.alice.id, "term_id": seed.term.id},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["overall_grade"] == "N/A"

    response = client.get(f"{API}/terms/report-card", params={"student_id": seed.alice.id}, headers=headers)
    assert response.status_code == 422


def test_reconcile_endpoint(client, seed, headers):
    response = client.post(f"{API}/summaries/reconcile", json={}, headers=headers)
    assert response.status_code == 200
    assert response.json()["summaries_recomputed"] == 0
