from sqlalchemy import select

from app.models import Lesson, RequestStatus, ScheduleChangeRequest


def create_lesson(client, school, teacher_index=0, **overrides):
    payload = {
        "name": "Mathematics 5A",
        "subject_id": school.subject_id,
        "class_id": school.class_a_id,
        "teacher_id": school.teacher_ids[teacher_index],
        "day": "monday",
        "start_time": "09:00",
        "end_time": "10:00",
    }
    payload.update(overrides)
    response = client.post(f"/api/schools/{school.id}/lessons", json=payload, headers=school.admin_headers)
    assert response.status_code == 201
    return response.json()["data"]


def submit(client, school, headers=None, **payload):
    payload.setdefault("reason", "Clashes with a staff meeting")
    return client.post(
        f"/api/schools/{school.id}/schedule-requests",
        json=payload,
        headers=headers or school.teacher_one_headers,
    )


def request_action(client, school, request_id, action, headers, json=None):
    return client.post(
        f"/api/schools/{school.id}/schedule-requests/{request_id}/{action}",
        json=json,
        headers=headers,
    )


def stored_status(db_session, request_id):
    db_session.expire_all()
    return db_session.get(ScheduleChangeRequest, request_id).status


def test_time_change_round_trip(client, school, db_session):
    lesson = create_lesson(client, school)
    submitted = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="time_change",
        proposed_day="monday",
        proposed_start_time="10:00",
        proposed_end_time="11:00",
    )
    assert submitted.status_code == 201
    request_id = submitted.json()["data"]["id"]
    assert submitted.json()["data"]["status"] == "pending"

    approved = request_action(client, school, request_id, "approve", school.admin_headers)
    assert approved.status_code == 200
    data = approved.json()["data"]
    assert data["status"] == "approved"
    assert data["admin_notes"] == "Approved"
    assert data["reviewed_at"] is not None

    db_session.expire_all()
    stored = db_session.get(Lesson, lesson["id"])
    assert stored.day.value == "monday"
    assert stored.start_time.strftime("%H:%M") == "10:00"
    assert stored.end_time.strftime("%H:%M") == "11:00"


def test_time_change_requires_complete_proposal(client, school):
    lesson = create_lesson(client, school)
    response = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="time_change",
        proposed_day="tuesday",
        proposed_start_time="10:00",
    )
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"

    inverted = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="time_change",
        proposed_day="tuesday",
        proposed_start_time="11:00",
        proposed_end_time="10:00",
    )
    assert inverted.status_code == 422


def test_swap_submission_rules(client, school):
    lesson = create_lesson(client, school)

    not_owner = submit(
        client,
        school,
        headers=school.teacher_two_headers,
        lesson_id=lesson["id"],
        requested_change_type="swap",
        proposed_swap_teacher_id=school.teacher_ids[2],
    )
    assert not_owner.status_code == 403
    assert not_owner.json()["message"] == "You can only request swaps for your own lessons."

    with_self = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="swap",
        proposed_swap_teacher_id=school.teacher_ids[0],
    )
    assert with_self.status_code == 422

    outsider = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="swap",
        proposed_swap_teacher_id=school.outsider_teacher_id,
    )
    assert outsider.status_code == 404

    missing_target = submit(client, school, lesson_id=lesson["id"], requested_change_type="swap")
    assert missing_target.status_code == 422


def test_swap_approval_rechecks_new_teacher_and_stays_pending(client, school, db_session):
    lesson = create_lesson(client, school, day="tuesday", start_time="13:00", end_time="14:00")
    submitted = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="swap",
        proposed_swap_teacher_id=school.teacher_ids[1],
    )
    assert submitted.status_code == 201
    request_id = submitted.json()["data"]["id"]

    # The swap target picks up an unrelated lesson before review.
    create_lesson(client, school, teacher_index=1, class_id=school.class_b_id, day="tuesday", start_time="13:30", end_time="14:30")

    approved = request_action(client, school, request_id, "approve", school.admin_headers)
    assert approved.status_code == 409
    assert approved.json()["code"] == "teacher_double_booked"
    assert stored_status(db_session, request_id) == RequestStatus.pending

    db_session.expire_all()
    assert db_session.get(Lesson, lesson["id"]).teacher_id == school.teacher_ids[0]


def test_swap_approval_moves_lesson_to_new_teacher(client, school, db_session):
    lesson = create_lesson(client, school)
    request_id = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="swap",
        proposed_swap_teacher_id=school.teacher_ids[1],
    ).json()["data"]["id"]

    approved = request_action(client, school, request_id, "approve", school.admin_headers)
    assert approved.status_code == 200

    db_session.expire_all()
    assert db_session.get(Lesson, lesson["id"]).teacher_id == school.teacher_ids[1]


def test_swap_approval_fails_when_lesson_changed_hands(client, school, db_session):
    lesson = create_lesson(client, school)
    request_id = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="swap",
        proposed_swap_teacher_id=school.teacher_ids[1],
    ).json()["data"]["id"]

    reassigned = client.put(
        f"/api/schools/{school.id}/lessons/{lesson['id']}",
        json={
            "name": lesson["name"],
            "subject_id": school.subject_id,
            "class_id": school.class_a_id,
            "teacher_id": school.teacher_ids[2],
            "day": "monday",
            "start_time": "09:00",
            "end_time": "10:00",
        },
        headers=school.admin_headers,
    )
    assert reassigned.status_code == 200

    approved = request_action(client, school, request_id, "approve", school.admin_headers)
    assert approved.status_code == 409
    assert approved.json()["code"] == "stale_state_conflict"
    assert stored_status(db_session, request_id) == RequestStatus.pending


def test_time_change_approval_respects_unavailability(client, school, db_session):
    lesson = create_lesson(client, school)
    request_id = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="time_change",
        proposed_day="thursday",
        proposed_start_time="14:00",
        proposed_end_time="15:00",
    ).json()["data"]["id"]

    blocked = client.post(
        f"/api/schools/{school.id}/teachers/{school.teacher_ids[0]}/unavailability",
        json={"day": "thursday", "start_time": "14:30", "end_time": "16:00"},
        headers=school.teacher_one_headers,
    )
    assert blocked.status_code == 201

    approved = request_action(client, school, request_id, "approve", school.admin_headers)
    assert approved.status_code == 409
    assert approved.json()["code"] == "teacher_unavailable"
    assert stored_status(db_session, request_id) == RequestStatus.pending


def test_cancel_authorization_and_finality(client, school, db_session):
    lesson = create_lesson(client, school)
    request_id = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="time_change",
        proposed_day="monday",
        proposed_start_time="11:00",
        proposed_end_time="12:00",
    ).json()["data"]["id"]

    by_other = request_action(client, school, request_id, "cancel", school.teacher_two_headers)
    assert by_other.status_code == 403
    assert by_other.json()["code"] == "unauthorized_transition"
    assert stored_status(db_session, request_id) == RequestStatus.pending

    by_owner = request_action(client, school, request_id, "cancel", school.teacher_one_headers)
    assert by_owner.status_code == 200
    assert by_owner.json()["data"]["status"] == "canceled"

    again = request_action(client, school, request_id, "cancel", school.teacher_one_headers)
    assert again.status_code == 409
    assert again.json()["code"] == "unauthorized_transition"

    approve_after_cancel = request_action(client, school, request_id, "approve", school.admin_headers)
    assert approve_after_cancel.status_code == 409
    assert stored_status(db_session, request_id) == RequestStatus.canceled


def test_reject_requires_notes_and_leaves_lesson_untouched(client, school, db_session):
    lesson = create_lesson(client, school)
    request_id = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="time_change",
        proposed_day="friday",
        proposed_start_time="09:00",
        proposed_end_time="10:00",
    ).json()["data"]["id"]

    blank = request_action(client, school, request_id, "reject", school.admin_headers, json={"admin_notes": "   "})
    assert blank.status_code == 422
    assert stored_status(db_session, request_id) == RequestStatus.pending

    rejected = request_action(
        client,
        school,
        request_id,
        "reject",
        school.admin_headers,
        json={"admin_notes": "Friday is assembly day"},
    )
    assert rejected.status_code == 200
    assert rejected.json()["data"]["status"] == "rejected"
    assert rejected.json()["data"]["admin_notes"] == "Friday is assembly day"

    db_session.expire_all()
    assert db_session.get(Lesson, lesson["id"]).day.value == "monday"

    again = request_action(client, school, request_id, "reject", school.admin_headers, json={"admin_notes": "Still no"})
    assert again.status_code == 409


def test_only_admins_review_and_only_teachers_submit(client, school, db_session):
    lesson = create_lesson(client, school)
    by_admin = submit(
        client,
        school,
        headers=school.admin_headers,
        lesson_id=lesson["id"],
        requested_change_type="time_change",
        proposed_day="monday",
        proposed_start_time="11:00",
        proposed_end_time="12:00",
    )
    assert by_admin.status_code == 403
    assert by_admin.json()["success"] is False
    assert by_admin.json()["code"] == "unauthorized_transition"

    request_id = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="time_change",
        proposed_day="monday",
        proposed_start_time="11:00",
        proposed_end_time="12:00",
    ).json()["data"]["id"]
    by_teacher = request_action(client, school, request_id, "approve", school.teacher_one_headers)
    assert by_teacher.status_code == 403
    body = by_teacher.json()
    assert body["success"] is False
    assert body["code"] == "unauthorized_transition"
    assert body["details"]["required_roles"] == ["admin"]
    assert stored_status(db_session, request_id) == RequestStatus.pending


def test_listing_requests(client, school):
    lesson = create_lesson(client, school)
    first = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="time_change",
        proposed_day="monday",
        proposed_start_time="11:00",
        proposed_end_time="12:00",
    ).json()["data"]["id"]
    second = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="swap",
        proposed_swap_teacher_id=school.teacher_ids[1],
    ).json()["data"]["id"]
    request_action(client, school, first, "cancel", school.teacher_one_headers)

    url = f"/api/schools/{school.id}/schedule-requests"
    queue = client.get(url, headers=school.admin_headers)
    assert [item["id"] for item in queue.json()["data"]] == [second]

    canceled = client.get(url, params={"status": "canceled"}, headers=school.admin_headers)
    assert [item["id"] for item in canceled.json()["data"]] == [first]

    own = client.get(url, headers=school.teacher_one_headers)
    assert {item["id"] for item in own.json()["data"]} == {first, second}

    others = client.get(url, headers=school.teacher_two_headers)
    assert others.json()["data"] == []


def test_requests_are_scoped_to_their_school(client, school, db_session):
    lesson = create_lesson(client, school)
    request_id = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="time_change",
        proposed_day="monday",
        proposed_start_time="11:00",
        proposed_end_time="12:00",
    ).json()["data"]["id"]

    response = client.post(
        f"/api/schools/{school.other_id}/schedule-requests/{request_id}/approve",
        headers=school.other_admin_headers,
    )
    assert response.status_code == 404
    assert stored_status(db_session, request_id) == RequestStatus.pending
    assert db_session.execute(select(ScheduleChangeRequest)).scalars().one().status == RequestStatus.pending


def test_deleting_a_lesson_removes_its_requests(client, school, db_session):
    lesson = create_lesson(client, school)
    request_id = submit(
        client,
        school,
        lesson_id=lesson["id"],
        requested_change_type="time_change",
        proposed_day="monday",
        proposed_start_time="11:00",
        proposed_end_time="12:00",
    ).json()["data"]["id"]

    deleted = client.delete(f"/api/schools/{school.id}/lessons/{lesson['id']}", headers=school.admin_headers)
    assert deleted.status_code == 200

    db_session.expire_all()
    assert db_session.get(ScheduleChangeRequest, request_id) is None

    approved = request_action(client, school, request_id, "approve", school.admin_headers)
    assert approved.status_code == 404
    assert approved.json()["details"]["resource_type"] == "Schedule change request"
