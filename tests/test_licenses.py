import io
import uuid
from datetime import timedelta

from PIL import Image

from wilaiety.services.licensing import regional_today

from conftest import make_facility, make_license


def _payload(facility, days_left, **overrides):
    today = regional_today()
    data = {
        "facility_id": str(facility.id),
        "license_number": "LIC-2025-01",
        "license_type": "رخصة استغلال",
        "issuing_authority": "وزارة الصحة",
        "issue_date": (today - timedelta(days=400)).isoformat(),
        "expiry_date": (today + timedelta(days=days_left)).isoformat(),
    }
    data.update(overrides)
    return data


def test_create_derives_status_from_expiry(client, db, member_headers):
    facility = make_facility(db)
    for days, expected in [(200, "ساري"), (10, "قريب الانتهاء"), (-2, "منتهي")]:
        resp = client.post("/api/licenses", json=_payload(facility, days, license_number=f"N{days}"), headers=member_headers)
        assert resp.status_code == 201
        assert resp.json()["status"] == expected


def test_create_keeps_explicit_cancellation(client, db, member_headers):
    facility = make_facility(db)
    resp = client.post("/api/licenses", json=_payload(facility, 200, status="ملغى"), headers=member_headers)
    assert resp.json()["status"] == "ملغى"
    assert resp.json()["badge"] == "muted"


def test_create_rejects_reversed_dates_and_unknown_facility(client, db, member_headers):
    facility = make_facility(db)
    today = regional_today()
    bad = _payload(facility, 10, issue_date=(today + timedelta(days=30)).isoformat())
    assert client.post("/api/licenses", json=bad, headers=member_headers).status_code == 422

    orphan = _payload(facility, 10, facility_id=str(uuid.uuid4()))
    assert client.post("/api/licenses", json=orphan, headers=member_headers).status_code == 404


def test_list_soonest_expiry_first_with_facility_summary(client, db, member_headers):
    facility = make_facility(db, name="Port Hospital")
    make_license(db, facility, days_left=300, number="LATE")
    make_license(db, facility, days_left=5, number="SOON")
    rows = client.get("/api/licenses?lang=fr", headers=member_headers).json()
    assert [r["license_number"] for r in rows] == ["SOON", "LATE"]
    first = rows[0]
    assert first["facility"]["name"] == "Port Hospital"
    assert first["facility"]["sector"] == "صحية"
    assert first["days_remaining"] == {"days": 5, "variant": "warning", "message": "5 jours restants"}


def test_list_search_and_status_filter(client, db, member_headers):
    port = make_facility(db, name="Port Hospital")
    school = make_facility(db, name="Central School", sector="تعليمية")
    make_license(db, port, days_left=300, number="P-1")
    make_license(db, school, days_left=-10, number="S-1")

    found = client.get("/api/licenses?q=central", headers=member_headers).json()
    assert [r["license_number"] for r in found] == ["S-1"]
    found = client.get("/api/licenses?q=p-1", headers=member_headers).json()
    assert [r["license_number"] for r in found] == ["P-1"]
    expired = client.get("/api/licenses?status=منتهي", headers=member_headers).json()
    assert [r["license_number"] for r in expired] == ["S-1"]


def test_patch_expiry_rederives_status(client, db, member_headers):
    lic = make_license(db, make_facility(db), days_left=300)
    new_expiry = (regional_today() + timedelta(days=3)).isoformat()
    resp = client.patch(f"/api/licenses/{lic.id}", json={"expiry_date": new_expiry}, headers=member_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "قريب الانتهاء"
    assert resp.json()["days_remaining"]["variant"] == "warning"


def test_patch_rejects_expiry_before_issue(client, db, member_headers):
    lic = make_license(db, make_facility(db), days_left=300)
    too_early = (lic.issue_date - timedelta(days=1)).isoformat()
    resp = client.patch(f"/api/licenses/{lic.id}", json={"expiry_date": too_early}, headers=member_headers)
    assert resp.status_code == 400


def test_missing_license_is_404(client, member_headers):
    assert client.get(f"/api/licenses/{uuid.uuid4()}", headers=member_headers).status_code == 404
    assert client.get("/api/licenses/garbage", headers=member_headers).status_code == 404


def test_license_stats(client, db, member_headers):
    facility = make_facility(db)
    make_license(db, facility, days_left=300, number="1")
    make_license(db, facility, days_left=20, number="2")
    make_license(db, facility, days_left=-1, number="3")
    make_license(db, facility, days_left=100, number="4", status="ملغى")
    stats = client.get("/api/licenses/stats", headers=member_headers).json()
    assert stats == {"total": 4, "active": 1, "expiring_soon": 1, "expired": 1, "cancelled": 1}


def test_refresh_status_endpoint_is_admin_only(client, db, member_headers, admin_headers):
    make_license(db, make_facility(db), days_left=-5, status="ساري")
    assert client.post("/api/licenses/refresh-status", headers=member_headers).status_code == 403
    resp = client.post("/api/licenses/refresh-status", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json() == {"changed": 1}


def test_license_certificate_pdf(client, db, member_headers, pdf_font):
    lic = make_license(db, make_facility(db), number="LIC/7")
    resp = client.get(f"/api/licenses/{lic.id}/pdf", headers=member_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert 'filename="license-lic-7.pdf"' in resp.headers["content-disposition"]
    assert resp.content.startswith(b"%PDF")


def _png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (6, 4), (197, 160, 89)).save(buf, format="PNG")
    return buf.getvalue()


def test_certificate_shows_the_uploaded_license_image(client, db, member_headers, pdf_font):
    lic = make_license(db, make_facility(db), number="LIC-IMG")
    plain = client.get(f"/api/licenses/{lic.id}/pdf", headers=member_headers)
    assert b"/Subtype /Image" not in plain.content

    resp = client.post(
        f"/api/licenses/{lic.id}/image",
        files={"file": ("scan.png", _png_bytes(), "image/png")},
        headers=member_headers,
    )
    assert resp.status_code == 200
    image_url = resp.json()["image_url"]
    assert "/storage/v1/object/public/license-images/" in image_url
    served = client.get(f"/storage/v1/object/public/license-images/{resp.json()['key']}")
    assert served.content == _png_bytes()

    with_image = client.get(f"/api/licenses/{lic.id}/pdf", headers=member_headers)
    assert with_image.status_code == 200
    assert b"/Subtype /Image" in with_image.content

    assert client.delete(f"/api/licenses/{lic.id}/image", headers=member_headers).json() == {"image_url": None}


def test_license_image_must_be_an_image(client, db, member_headers):
    lic = make_license(db, make_facility(db))
    resp = client.post(
        f"/api/licenses/{lic.id}/image",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=member_headers,
    )
    assert resp.status_code == 415
