"""HTTP-level tests for the portal routers."""
import threading

from fastapi.testclient import TestClient

from app.main import create_app

PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"


def _seed(client):
    """Create a 3-day conference, one hall, two slots and two speakers over HTTP."""
    conference = client.post("/conferences", json={"name": "PyConf", "total_days": 3}).json()
    hall = client.post(
        "/halls", json={"conference_id": conference["id"], "name": "Main Hall", "capacity": 300}
    ).json()
    day1 = client.post("/timeslots", json={
        "conference_id": conference["id"], "day_number": 1,
        "start_time": "09:00:00", "end_time": "10:00:00", "slot_order": 1,
    }).json()
    day2 = client.post("/timeslots", json={
        "conference_id": conference["id"], "day_number": 2,
        "start_time": "09:00:00", "end_time": "10:00:00", "slot_order": 4,
    }).json()
    ada = client.post("/speakers", json={"full_name": "Ada Lovelace"}).json()
    alan = client.post("/speakers", json={"full_name": "Alan Turing"}).json()
    return conference, hall, day1, day2, ada, alan


def _booking(conference, hall, slot, speaker, title="Engines"):
    return {
        "speaker_id": speaker["id"],
        "hall_id": hall["id"],
        "slot_id": slot["id"],
        "conference_id": conference["id"],
        "session_title": title,
        "session_description": "A talk",
    }


def test_health(api_client):
    assert api_client.get("/health").json() == {"status": "ok"}


class TestScheduleEndpoints:
    def test_create_list_update_delete(self, api_client):
        conference, hall, day1, day2, ada, _ = _seed(api_client)

        created = api_client.post("/schedules", json=_booking(conference, hall, day2, ada))
        assert created.status_code == 201
        schedule_id = created.json()["schedule_id"]

        listing = api_client.get("/schedules", params={"conference_id": conference["id"]})
        assert listing.status_code == 200
        [row] = listing.json()
        assert row["schedule_id"] == schedule_id
        assert row["hall_name"] == "Main Hall"
        assert row["speaker_code"] == "SP001"
        assert row["day_number"] == 2
        assert row["start_time"] == "09:00:00"

        updated = api_client.put(f"/schedules/{schedule_id}", json={"session_title": "Engines II"})
        assert updated.status_code == 200
        assert updated.json()["session_title"] == "Engines II"

        assert api_client.delete(f"/schedules/{schedule_id}").status_code == 200
        assert api_client.delete(f"/schedules/{schedule_id}").status_code == 404

    def test_conflict_is_409(self, api_client):
        conference, hall, day1, _, ada, alan = _seed(api_client)
        api_client.post("/schedules", json=_booking(conference, hall, day1, ada))

        response = api_client.post("/schedules", json=_booking(conference, hall, day1, alan, "Other"))

        assert response.status_code == 409
        assert "error" in response.json()

    def test_unknown_reference_is_404(self, api_client):
        conference, hall, day1, _, ada, _ = _seed(api_client)
        body = _booking(conference, hall, day1, ada)
        body["speaker_id"] = 999
        assert api_client.post("/schedules", json=body).status_code == 404

    def test_update_conflict_is_409(self, api_client):
        conference, hall, day1, day2, ada, alan = _seed(api_client)
        api_client.post("/schedules", json=_booking(conference, hall, day1, ada))
        other = api_client.post("/schedules", json=_booking(conference, hall, day2, alan, "Other")).json()

        response = api_client.put(f"/schedules/{other['schedule_id']}", json={"slot_id": day1["id"]})

        assert response.status_code == 409

    def test_malformed_body_is_400(self, api_client):
        response = api_client.post("/schedules", json={"speaker_id": "not-a-number"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request parameters"


class TestUploadEndpoints:
    def _upload(self, client, filename="My Talk!.pptx", content=b"slides", **form):
        data = {"speakerCode": "SP001", "hallName": "Main Hall", "dayNumber": "2", "sessionTitle": "Engines"}
        data.update(form)
        return client.post(
            "/uploads/presentation",
            data=data,
            files={"presentation": (filename, content, PPTX_MIME)},
        )

    def test_upload_is_staged_and_processed(self, api_client, tmp_path):
        conference, hall, _, day2, ada, _ = _seed(api_client)
        api_client.post("/schedules", json=_booking(conference, hall, day2, ada))

        response = self._upload(api_client)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["stored_path"] == "uploads/Main_Hall/Day_2/"
        assert body["stored_filename"] == "1_SP001_My_Talk_.pptx"

        # The background pass runs before the test client returns.
        stored = api_client.get(f"/files/{body['file_id']}").json()
        assert stored["upload_status"] == "processed"
        assert (tmp_path / "uploads" / "Main_Hall" / "Day_2" / "1_SP001_My_Talk_.pptx").read_bytes() == b"slides"

        files = api_client.get("/speakers/by-code/SP001/files").json()
        assert [f["id"] for f in files] == [body["file_id"]]

        download = api_client.get(f"/files/{body['file_id']}/download")
        assert download.status_code == 200
        assert download.content == b"slides"

    def test_pdf_is_400(self, api_client):
        conference, hall, _, day2, ada, _ = _seed(api_client)
        api_client.post("/schedules", json=_booking(conference, hall, day2, ada))

        response = self._upload(api_client, filename="talk.pdf")

        assert response.status_code == 400
        assert api_client.get("/files").json() == []

    def test_unknown_session_is_404(self, api_client):
        _seed(api_client)
        assert self._upload(api_client, sessionTitle="Nope").status_code == 404

    def test_missing_file_is_400(self, api_client):
        response = api_client.post("/uploads/presentation", data={"speakerCode": "SP001"})
        assert response.status_code == 400


class TestFileEndpoints:
    def test_process_and_delete(self, api_client):
        conference, hall, _, day2, ada, _ = _seed(api_client)
        api_client.post("/schedules", json=_booking(conference, hall, day2, ada))
        file_id = api_client.post(
            "/uploads/presentation",
            data={"speakerCode": "SP001", "hallName": "Main Hall", "dayNumber": "2", "sessionTitle": "Engines"},
            files={"presentation": ("deck.ppt", b"ppt", "application/vnd.ms-powerpoint")},
        ).json()["file_id"]

        summary = api_client.post("/files/process").json()
        assert summary == {"processed": 0, "failed": 0, "already_running": False}

        assert api_client.delete(f"/files/{file_id}").status_code == 200
        assert api_client.delete(f"/files/{file_id}").status_code == 404

    def test_reprocess_non_failed_is_400(self, api_client):
        conference, hall, _, day2, ada, _ = _seed(api_client)
        api_client.post("/schedules", json=_booking(conference, hall, day2, ada))
        file_id = api_client.post(
            "/uploads/presentation",
            data={"scheduleId": "1", "speakerCode": "SP001"},
            files={"presentation": ("deck.pptx", b"pptx", PPTX_MIME)},
        ).json()["file_id"]

        assert api_client.post(f"/files/{file_id}/reprocess").status_code == 400
        assert api_client.post("/files/404/reprocess").status_code == 404

    def test_download_of_replaced_upload_is_404(self, api_client):
        conference, hall, _, day2, ada, _ = _seed(api_client)
        api_client.post("/schedules", json=_booking(conference, hall, day2, ada))
        file_ids = [
            api_client.post(
                "/uploads/presentation",
                data={"scheduleId": "1", "speakerCode": "SP001"},
                files={"presentation": ("deck.pptx", content, PPTX_MIME)},
            ).json()["file_id"]
            for content in (b"first", b"second")
        ]

        assert api_client.get(f"/files/{file_ids[0]}").json()["superseded_by"] == file_ids[1]
        assert api_client.get(f"/files/{file_ids[0]}/download").status_code == 404
        assert api_client.get(f"/files/{file_ids[1]}/download").content == b"second"


class TestCatalogEndpoints:
    def test_speaker_login(self, api_client):
        conference, hall, _, day2, ada, _ = _seed(api_client)
        api_client.post("/schedules", json=_booking(conference, hall, day2, ada))

        response = api_client.post("/speakers/login", json={"speakerCode": "SP001"})

        assert response.status_code == 200
        profile = response.json()
        assert profile["speaker"]["full_name"] == "Ada Lovelace"
        assert profile["total_sessions"] == 1
        assert profile["schedule"][0]["hall_name"] == "Main Hall"

    def test_speaker_login_errors(self, api_client):
        assert api_client.post("/speakers/login", json={"speakerCode": ""}).status_code == 400
        assert api_client.post("/speakers/login", json={"speakerCode": "SP999"}).status_code == 404

    def test_halls_default_to_configured_conference(self, api_client):
        _seed(api_client)
        assert [h["name"] for h in api_client.get("/halls").json()] == ["Main Hall"]

    def test_delete_speaker_cascades_sessions(self, api_client):
        conference, hall, day1, _, ada, _ = _seed(api_client)
        api_client.post("/schedules", json=_booking(conference, hall, day1, ada))

        response = api_client.delete(f"/speakers/{ada['id']}")

        assert response.json() == {"deleted": ada["id"], "sessions_removed": 1}
        assert api_client.get("/schedules").json() == []


def test_unexpected_error_is_500_without_detail(app_config, monkeypatch):
    app = create_app(app_config)
    with TestClient(app, raise_server_exceptions=False) as client:
        def explode(**kwargs):
            raise RuntimeError("secret internals")

        monkeypatch.setattr(app.state.scheduler, "list_schedule", explode)
        response = client.get("/schedules")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_pending_write_does_not_stall_other_requests(api_client):
    write_lock = api_client.app.state.store._write_lock
    results = {}

    def create_speaker():
        results["write"] = api_client.post("/speakers", json={"full_name": "Blocked"}).status_code

    def read_conferences():
        results["read"] = api_client.get("/conferences").status_code

    write_lock.acquire()
    try:
        writer = threading.Thread(target=create_speaker)
        writer.start()
        writer.join(timeout=0.5)
        assert writer.is_alive()

        reader = threading.Thread(target=read_conferences)
        reader.start()
        reader.join(timeout=5)
        assert not reader.is_alive()
        assert results["read"] == 200
    finally:
        write_lock.release()

    writer.join(timeout=5)
    assert results["write"] == 201
