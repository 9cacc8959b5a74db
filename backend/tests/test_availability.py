from sqlalchemy import select

from app.models import TeacherAvailability


def block_url(school, teacher_id):
    return f"/api/schools/{school.id}/teachers/{teacher_id}/unavailability"


def create_block(client, school, headers=None, teacher_index=0, **overrides):
    payload = {"day": "monday", "start_time": "08:00", "end_time": "09:00"}
    payload.update(overrides)
    return client.post(
        block_url(school, school.teacher_ids[teacher_index]),
        json=payload,
        headers=headers or school.teacher_one_headers,
    )


def test_teacher_records_unavailability(client, school, db_session):
    response = create_block(client, school, notes="School run")
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["is_available"] is False
    assert data["day_of_week"] == "monday"
    assert data["start_time"] == "08:00"
    assert data["notes"] == "School run"

    stored = db_session.execute(select(TeacherAvailability)).scalars().all()
    assert [item.is_available for item in stored] == [False]


def test_overlapping_block_is_rejected(client, school):
    assert create_block(client, school).status_code == 201
    response = create_block(client, school, start_time="08:30", end_time="09:30")
    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "overlapping_availability_block"
    assert body["details"]["conflicting_id"]


def test_adjacent_blocks_and_other_days_are_allowed(client, school):
    assert create_block(client, school).status_code == 201
    assert create_block(client, school, start_time="09:00", end_time="10:00").status_code == 201
    assert create_block(client, school, day="tuesday").status_code == 201


def test_block_interval_must_be_valid(client, school):
    response = create_block(client, school, start_time="10:00", end_time="10:00")
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"


def test_update_does_not_conflict_with_itself(client, school):
    block = create_block(client, school).json()["data"]
    response = client.put(
        f"/api/schools/{school.id}/unavailability/{block['id']}",
        json={"day": "monday", "start_time": "08:30", "end_time": "09:30"},
        headers=school.teacher_one_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["start_time"] == "08:30"


def test_update_into_another_block_is_rejected(client, school):
    create_block(client, school)
    second = create_block(client, school, start_time="10:00", end_time="11:00").json()["data"]
    response = client.put(
        f"/api/schools/{school.id}/unavailability/{second['id']}",
        json={"day": "monday", "start_time": "08:45", "end_time": "10:15"},
        headers=school.teacher_one_headers,
    )
    assert response.status_code == 409
    assert response.json()["code"] == "overlapping_availability_block"


def test_teacher_cannot_manage_another_teachers_blocks(client, school):
    response = create_block(client, school, teacher_index=1)
    assert response.status_code == 403
    assert response.json()["code"] == "unauthorized_transition"

    block = create_block(client, school).json()["data"]
    deleted = client.delete(
        f"/api/schools/{school.id}/unavailability/{block['id']}",
        headers=school.teacher_two_headers,
    )
    assert deleted.status_code == 403


def test_admin_manages_any_teacher_and_lists_by_day(client, school):
    assert create_block(client, school, headers=school.admin_headers, teacher_index=2).status_code == 201
    assert (
        create_block(client, school, headers=school.admin_headers, teacher_index=2, day="wednesday").status_code
        == 201
    )

    response = client.get(
        block_url(school, school.teacher_ids[2]),
        params={"day": "wednesday"},
        headers=school.admin_headers,
    )
    assert response.status_code == 200
    assert [item["day_of_week"] for item in response.json()["data"]] == ["wednesday"]


def test_blocks_are_listed_in_week_order(client, school):
    create_block(client, school, day="friday")
    create_block(client, school, day="monday", start_time="13:00", end_time="14:00")
    create_block(client, school, day="monday")

    response = client.get(block_url(school, school.teacher_ids[0]), headers=school.teacher_one_headers)
    slots = [(item["day_of_week"], item["start_time"]) for item in response.json()["data"]]
    assert slots == [("monday", "08:00"), ("monday", "13:00"), ("friday", "08:00")]


def test_unavailability_blocks_lesson_placement(client, school):
    create_block(client, school)
    response = client.post(
        f"/api/schools/{school.id}/lessons",
        json={
            "name": "Early Maths",
            "subject_id": school.subject_id,
            "class_id": school.class_a_id,
            "teacher_id": school.teacher_ids[0],
            "day": "monday",
            "start_time": "08:30",
            "end_time": "09:30",
        },
        headers=school.admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["code"] == "teacher_unavailable"


def test_delete_block(client, school):
    block = create_block(client, school).json()["data"]
    url = f"/api/schools/{school.id}/unavailability/{block['id']}"
    assert client.delete(url, headers=school.teacher_one_headers).status_code == 200
    assert client.delete(url, headers=school.teacher_one_headers).status_code == 404
    assert create_block(client, school, start_time="08:30", end_time="09:30").status_code == 201
