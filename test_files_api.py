import os
import shutil

import pytest

from models import File
from upload import INVALID_TYPE_MESSAGE


def chart_payload(file_id, **overrides):
    payload = {
        "title": "Revenue by region",
        "chart_type": "bar",
        "dimension": "2d",
        "file_id": file_id,
        "config": {"x_axis": {"column": "Region"}, "y_axis": {"column": "Revenue"}},
    }
    payload.update(overrides)
    return payload


class TestAuthentication:
    """
    Tests for the identity header on protected routes.
    """

    @pytest.mark.parametrize(
        "headers, message",
        [
            ({}, "Authentication required"),
            ({"X-User-Id": "abc"}, "Invalid user identity"),
            ({"X-User-Id": "999"}, "User not found or inactive"),
        ],
        ids=["no-header", "not-an-id", "unknown-user"]
    )
    def test_rejected_identities(self, client, users, headers, message):
        response = client.get("/api/files/", headers=headers)

        assert response.status_code == 401
        assert response.json()["success"] is False
        assert response.json()["error"] == message

    def test_inactive_user(self, client, users, auth):
        response = client.get("/api/files/", headers=auth(users["inactive"]))

        assert response.status_code == 401
        assert response.json()["error"] == "User not found or inactive"


class TestUpload:
    """
    Tests for POST /api/files/upload.
    """

    def test_upload_and_fetch(self, client, users, auth, upload, upload_dir):
        """
        Test the full upload flow: the workbook is stored, parsed and the
        file detail returns the same headers and row count.
        """
        response = upload(users["owner"], description="  Q1 numbers ", tags="sales, 2024, ")

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["status"] == "completed"
        assert data["original_name"] == "sales.xlsx"
        assert data["headers"] == ["Region", "Revenue", "Units", "Launched"]
        assert data["total_rows"] == 3
        assert data["sheet_names"] == ["Sales"]
        assert data["description"] == "Q1 numbers"
        assert data["tags"] == ["sales", "2024"]
        assert os.listdir(upload_dir) == [data["filename"]]

        detail = client.get(f"/api/files/{data['id']}", headers=auth(users["owner"])).json()["data"]
        assert detail["headers"] == data["headers"]
        assert detail["total_rows"] == 3
        assert detail["uploaded_by"]["username"] == "owner"
        assert detail["metadata"]["active_sheet"] == "Sales"
        assert detail["metadata"]["column_analysis"]["Revenue"]["data_type"] == "number"
        assert detail["charts_count"] == 0

    def test_rejects_non_excel_type(self, upload, users, upload_dir):
        response = upload(users["owner"], filename="sales.csv", content_type="text/csv")

        assert response.status_code == 400
        assert response.json()["error"] == INVALID_TYPE_MESSAGE
        assert os.listdir(upload_dir) == []

    def test_missing_file(self, client, users, auth):
        response = client.post("/api/files/upload", headers=auth(users["owner"]), data={"description": "x"})

        assert response.status_code == 400
        assert response.json()["error"].startswith("No file uploaded")

    def test_unreadable_workbook_is_not_kept(self, upload, users, tmp_path, upload_dir):
        path = tmp_path / "fake.xlsx"
        path.write_text("not really a spreadsheet")

        response = upload(users["owner"], path=str(path))

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid Excel file:")
        assert os.listdir(upload_dir) == []

    def test_tag_too_long(self, upload, users):
        response = upload(users["owner"], tags="fine, " + "x" * 21)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["errors"]

    def test_parse_failure_then_reprocess(self, client, users, auth, upload, make_workbook, db_session):
        """
        An empty workbook is stored as failed (422 with its id); after the stored
        workbook is fixed, reprocessing completes it.
        """
        response = upload(users["owner"], path=make_workbook(rows=[], filename="empty.xlsx"))

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "Failed to parse Excel file: The Excel sheet is empty"
        file_id = body["details"]["file_id"]

        headers = auth(users["owner"])
        assert client.get(f"/api/files/{file_id}", headers=headers).json()["data"]["status"] == "failed"

        data_response = client.get(f"/api/files/{file_id}/data", headers=headers)
        assert data_response.status_code == 400
        assert data_response.json()["error"] == "File is still being processed or failed to process"

        stored_path = db_session.get(File, file_id).path
        shutil.copyfile(make_workbook(filename="fixed.xlsx"), stored_path)

        reprocessed = client.post(f"/api/files/{file_id}/reprocess", headers=headers)
        assert reprocessed.status_code == 200
        assert reprocessed.json()["data"]["status"] == "completed"
        assert reprocessed.json()["data"]["total_rows"] == 3

        again = client.post(f"/api/files/{file_id}/reprocess", headers=headers)
        assert again.status_code == 400
        assert again.json()["error"] == "File can only be reprocessed if it failed"

    def test_reprocess_failure_keeps_file_failed(self, client, users, auth, upload, make_workbook):
        file_id = upload(users["owner"], path=make_workbook(rows=[])).json()["details"]["file_id"]

        response = client.post(f"/api/files/{file_id}/reprocess", headers=auth(users["owner"]))

        assert response.status_code == 422
        assert response.json()["error"].startswith("Failed to reprocess Excel file:")
        assert response.json()["details"] == {"file_id": file_id}


class TestFileData:

    def test_pagination(self, client, users, auth, upload):
        file_id = upload(users["owner"]).json()["data"]["id"]
        headers = auth(users["owner"])

        first = client.get(f"/api/files/{file_id}/data?page=1&limit=2", headers=headers).json()["data"]
        second = client.get(f"/api/files/{file_id}/data?page=2&limit=2", headers=headers).json()["data"]

        assert [row["Region"] for row in first["data"]["rows"]] == ["North", "South"]
        assert first["data"]["total_pages"] == 2
        assert first["data"]["has_more"] is True
        assert first["data"]["rows"][0]["Launched"] == "2024-01-15T00:00:00"
        assert first["data"]["rows"][0]["_row_index"] == 2
        assert [row["Region"] for row in second["data"]["rows"]] == ["East"]
        assert second["data"]["has_more"] is False
        assert second["metadata"]["total_sheets"] == 1

    def test_limit_bounds(self, client, users, auth, upload):
        file_id = upload(users["owner"]).json()["data"]["id"]

        response = client.get(f"/api/files/{file_id}/data?limit=1001", headers=auth(users["owner"]))

        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    def test_public_file_is_readable_by_others(self, client, users, auth, upload):
        file_id = upload(users["owner"]).json()["data"]["id"]
        url = f"/api/files/{file_id}/data"

        assert client.get(url, headers=auth(users["other"])).status_code == 403

        client.put(f"/api/files/{file_id}", headers=auth(users["owner"]), json={"is_public": True})

        assert client.get(url, headers=auth(users["other"])).status_code == 200
        # detail stays owner/admin only
        assert client.get(f"/api/files/{file_id}", headers=auth(users["other"])).status_code == 403
        assert client.get(f"/api/files/{file_id}", headers=auth(users["admin"])).status_code == 200


class TestSheets:

    def test_list_and_preview_sheets(self, client, users, auth, upload, make_workbook):
        path = make_workbook(extra_sheets={"Costs": [["Item", "Cost"], ["Rent", 500]]})
        file_id = upload(users["owner"], path=path).json()["data"]["id"]
        headers = auth(users["owner"])

        info = client.get(f"/api/files/{file_id}/sheets", headers=headers).json()["data"]
        assert info["sheet_names"] == ["Sales", "Costs"]
        assert info["total_sheets"] == 2

        preview = client.get(f"/api/files/{file_id}/sheets/Costs", headers=headers).json()["data"]
        assert preview["headers"] == ["Item", "Cost"]
        assert preview["rows"][0]["Cost"] == 500

        missing = client.get(f"/api/files/{file_id}/sheets/Nope", headers=headers)
        assert missing.status_code == 404
        assert missing.json()["error"] == "Sheet 'Nope' not found"


class TestListFiles:

    def test_lists_only_own_files(self, client, users, auth, upload, make_workbook):
        upload(users["owner"])
        upload(users["owner"], path=make_workbook(rows=[], filename="empty.xlsx"))
        upload(users["other"])

        owned = client.get("/api/files/", headers=auth(users["owner"])).json()["data"]
        assert owned["total"] == 2
        assert owned["total_pages"] == 1
        assert owned["current_page"] == 1
        assert {file["uploaded_by"]["username"] for file in owned["files"]} == {"owner"}

        failed = client.get("/api/files/?status=failed", headers=auth(users["owner"])).json()["data"]
        assert failed["total"] == 1
        assert failed["files"][0]["status"] == "failed"

    def test_unknown_status_filter(self, client, users, auth):
        response = client.get("/api/files/?status=archived", headers=auth(users["owner"]))

        assert response.status_code == 400


class TestUpdateFile:

    def test_owner_updates_metadata(self, client, users, auth, upload):
        file_id = upload(users["owner"]).json()["data"]["id"]

        response = client.put(
            f"/api/files/{file_id}",
            headers=auth(users["owner"]),
            json={"description": " Updated ", "tags": "a, b,", "is_public": True}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["description"] == "Updated"
        assert data["tags"] == ["a", "b"]
        assert data["is_public"] is True

    def test_non_owner_forbidden(self, client, users, auth, upload):
        file_id = upload(users["owner"]).json()["data"]["id"]

        for user in ("other", "admin"):
            response = client.put(f"/api/files/{file_id}", headers=auth(users[user]), json={"description": "x"})
            assert response.status_code == 403

    def test_is_public_must_be_boolean(self, client, users, auth, upload):
        file_id = upload(users["owner"]).json()["data"]["id"]

        response = client.put(f"/api/files/{file_id}", headers=auth(users["owner"]), json={"is_public": "yes"})

        assert response.status_code == 400


class TestDeleteFile:

    def test_delete_removes_charts_and_stored_file(self, client, users, auth, upload, upload_dir):
        headers = auth(users["owner"])
        file_id = upload(users["owner"]).json()["data"]["id"]
        chart_id = client.post("/api/charts/", headers=headers, json=chart_payload(file_id)).json()["data"]["id"]

        response = client.delete(f"/api/files/{file_id}", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"] == {"id": file_id, "deleted_charts": 1}
        assert os.listdir(upload_dir) == []
        assert client.get(f"/api/files/{file_id}", headers=headers).status_code == 404
        assert client.get(f"/api/charts/{chart_id}", headers=headers).status_code == 404

    def test_other_user_cannot_delete(self, client, users, auth, upload):
        file_id = upload(users["owner"]).json()["data"]["id"]

        assert client.delete(f"/api/files/{file_id}", headers=auth(users["other"])).status_code == 403
        assert client.delete(f"/api/files/{file_id}", headers=auth(users["admin"])).status_code == 200

    def test_unknown_file(self, client, users, auth):
        response = client.delete("/api/files/12345", headers=auth(users["owner"]))

        assert response.status_code == 404
        assert response.json()["error"] == "File not found"
