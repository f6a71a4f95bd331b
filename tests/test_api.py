"""
Integration tests for the receipt tracker HTTP endpoints.
"""
from urllib.parse import urlparse

from conftest import SAMPLE_FIELDS, USER, receipt_payload
from receipt_tracker.config import Settings, settings

PNG = b"\x89PNG\r\n\x1a\nfake-image"


def _upload(client, data=PNG, content_type="image/png", headers=USER):
    return client.post(
        "/api/upload-and-analyze",
        files={"image": ("receipt.png", data, content_type)},
        headers=headers,
    )


def _create(client, **overrides):
    body = {
        "store_name": "Starbucks",
        "total_amount": "5500.00",
        "transaction_date": "2024-05-12",
        "source_image_url": "https://receipts.test/api/blobs/1-receipt.png",
        "category": "식비",
    }
    body.update(overrides)
    return client.post("/api/receipts", json=body, headers=USER)


class TestService:
    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_environment_defaults_to_development(self, monkeypatch):
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        assert Settings(_env_file=None).ENVIRONMENT == "development"

    def test_environment_from_env(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        assert Settings(_env_file=None).ENVIRONMENT == "production"


class TestUpload:
    def test_upload_success(self, client, vendor):
        vendor.polls = [{"status": "running"}, receipt_payload(SAMPLE_FIELDS)]
        resp = _upload(client)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["state"] == "normalized"
        assert body["receipt"]["store_name"] == "Starbucks"
        assert body["receipt"]["transaction_date"] == "2024-05-12"
        assert body["receipt"]["source_image_url"].startswith("https://receipts.test/api/blobs/")

    def test_upload_requires_user(self, client, vendor):
        resp = _upload(client, headers={})
        assert resp.status_code == 401
        assert vendor.requests == []

    def test_upload_rejects_gif(self, client, vendor):
        resp = _upload(client, content_type="image/gif")
        assert resp.status_code == 415
        assert resp.json()["detail"]["state"] == "upload_failed"
        assert vendor.requests == []

    def test_upload_rejects_empty(self, client):
        resp = _upload(client, data=b"")
        assert resp.status_code == 400

    def test_upload_over_limit_rejected_before_analysis(self, client, vendor, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 4)
        resp = _upload(client)
        assert resp.status_code == 400
        detail = resp.json()["detail"]
        assert detail["state"] == "upload_failed"
        assert detail["error"] == "image exceeds 4 bytes"
        assert vendor.requests == []

    def test_submission_failed(self, client, vendor):
        vendor.submit_status = 401
        resp = _upload(client)
        assert resp.status_code == 502
        detail = resp.json()["detail"]
        assert detail["success"] is False
        assert detail["state"] == "submission_failed"
        assert detail["vendor_status"] == 401

    def test_analysis_failed(self, client, vendor):
        vendor.polls = [{"status": "failed", "error": {"code": "InvalidContent"}}]
        resp = _upload(client)
        assert resp.status_code == 502
        assert resp.json()["detail"]["state"] == "poll_failed"
        assert resp.json()["detail"]["diagnostics"] == {"code": "InvalidContent"}

    def test_timeout(self, client, vendor):
        # no scripted polls: the fake answers "running" until the budget is spent
        resp = _upload(client)
        assert resp.status_code == 504
        assert resp.json()["detail"]["state"] == "timed_out"
        assert resp.json()["detail"]["attempts_made"] == 30

    def test_uploaded_image_is_readable(self, client, vendor):
        vendor.polls = [receipt_payload(SAMPLE_FIELDS)]
        url = _upload(client).json()["receipt"]["source_image_url"]
        resp = client.get(urlparse(url).path, headers=USER)
        assert resp.status_code == 200
        assert resp.content == PNG
        assert resp.headers["content-type"] == "image/png"


class TestBlobs:
    def test_signed_url(self, client, blob_store):
        blob_store.put("1-a.png", PNG, "image/png")
        url = urlparse(blob_store.signed_read_url("1-a.png", 60))
        resp = client.get(f"{url.path}?{url.query}")
        assert resp.status_code == 200
        assert resp.content == PNG

    def test_bad_signature(self, client, blob_store):
        blob_store.put("1-a.png", PNG, "image/png")
        resp = client.get("/api/blobs/1-a.png", params={"expires": 9999999999, "signature": "nope"})
        assert resp.status_code == 403

    def test_expired_signature(self, client, blob_store):
        blob_store.put("1-a.png", PNG, "image/png")
        resp = client.get(
            "/api/blobs/1-a.png",
            params={"expires": 1, "signature": blob_store.sign("1-a.png", 1)},
        )
        assert resp.status_code == 403

    def test_unsigned_requires_user(self, client, blob_store):
        blob_store.put("1-a.png", PNG, "image/png")
        assert client.get("/api/blobs/1-a.png").status_code == 401

    def test_not_found(self, client):
        assert client.get("/api/blobs/missing.png", headers=USER).status_code == 404


class TestReceipts:
    def test_create_and_get(self, client):
        resp = _create(client, memo="coffee")
        assert resp.status_code == 201
        body = resp.json()
        assert body["user_id"] == "user-1"
        assert body["category"] == "식비"
        assert body["memo"] == "coffee"

        get_resp = client.get(f"/api/receipts/{body['id']}", headers=USER)
        assert get_resp.status_code == 200
        assert get_resp.json()["store_name"] == "Starbucks"
        assert get_resp.json()["transaction_date"] == "2024-05-12"

    def test_category_required(self, client):
        assert _create(client, category="   ").status_code == 422

    def test_negative_total_rejected(self, client):
        assert _create(client, total_amount="-1").status_code == 422

    def test_raw_date_rejected(self, client):
        assert _create(client, transaction_date="N/A").status_code == 422

    def test_null_date_allowed(self, client):
        resp = _create(client, transaction_date=None)
        assert resp.status_code == 201
        assert resp.json()["transaction_date"] is None

    def test_other_users_receipt_not_found(self, client):
        rid = _create(client).json()["id"]
        resp = client.get(f"/api/receipts/{rid}", headers={"X-User-Id": "user-2"})
        assert resp.status_code == 404

    def test_get_not_found(self, client):
        assert client.get("/api/receipts/999", headers=USER).status_code == 404

    def test_list_filters_by_month(self, client):
        _create(client, transaction_date="2024-05-01")
        _create(client, transaction_date="2024-05-31")
        _create(client, transaction_date="2024-06-01")
        resp = client.get("/api/receipts", params={"year": 2024, "month": 5}, headers=USER)
        assert resp.status_code == 200
        assert [r["transaction_date"] for r in resp.json()] == ["2024-05-31", "2024-05-01"]

    def test_list_empty(self, client):
        resp = client.get("/api/receipts", headers=USER)
        assert resp.status_code == 200
        assert resp.json() == []

    def test_month_without_year(self, client):
        assert client.get("/api/receipts", params={"month": 5}, headers=USER).status_code == 400


class TestAnalytics:
    def test_monthly_category(self, client):
        _create(client, category="식비", total_amount="5500.00", transaction_date="2024-05-01")
        _create(client, category="식비", total_amount="4500.00", transaction_date="2024-05-20")
        _create(client, category="교통비", total_amount="20000.00", transaction_date="2024-05-03")
        _create(client, category="교통비", total_amount="99.00", transaction_date="2024-06-01")

        resp = client.get(
            "/api/analytics/monthly-category", params={"year": 2024, "month": 5}, headers=USER
        )
        assert resp.status_code == 200
        body = resp.json()
        assert (body["year"], body["month"]) == (2024, 5)
        items = body["items"]
        assert [i["category"] for i in items] == ["교통비", "식비"]
        assert items[1]["frequency"] == 2
        assert float(items[1]["monetary"]) == 10000.0
        assert items[1]["last_transaction_date"] == "2024-05-20"

    def test_daily_totals(self, client):
        _create(client, total_amount="1000.00", transaction_date="2024-05-01")
        _create(client, total_amount="2500.50", transaction_date="2024-05-01")
        _create(client, total_amount="300.00", transaction_date="2024-05-09")

        resp = client.get("/api/analytics/daily", params={"year": 2024, "month": 5}, headers=USER)
        days = resp.json()["days"]
        assert [d["day"] for d in days] == ["2024-05-01", "2024-05-09"]
        assert days[0]["count"] == 2
        assert float(days[0]["total"]) == 3500.5

    def test_requires_user(self, client):
        assert client.get("/api/analytics/monthly-category").status_code == 401
