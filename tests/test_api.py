from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from refi_agent import api

client = TestClient(api.app)

PAYLOAD = {
    "current_loan_amount": 200000,
    "current_interest_rate": 6,
    "remaining_term": 25,
    "new_loan_amount": 200000,
    "new_interest_rate": 4,
    "new_loan_term": 25,
}


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_calc_refinance():
    response = client.post("/v1/mortgages/refinance:calc", json=PAYLOAD)
    assert response.status_code == 200
    data = response.json()
    assert data["current_payment"] == pytest.approx(1288.60, abs=0.01)
    assert data["new_payment"] == pytest.approx(1055.67, abs=0.01)
    assert data["monthly_savings"] > 0
    assert data["current_payment_display"] == "1,288.60"
    assert data["new_payment_display"] == "1,055.67"
    assert data["savings_sign"] == "positive"


def test_calc_refinance_accepts_form_text():
    payload = {key: str(value) for key, value in PAYLOAD.items()}
    response = client.post("/v1/mortgages/refinance:calc", json=payload)
    assert response.status_code == 200
    assert response.json()["current_payment_display"] == "1,288.60"


def test_calc_refinance_identical_loans():
    payload = dict(PAYLOAD, new_interest_rate=6)
    data = client.post("/v1/mortgages/refinance:calc", json=payload).json()
    assert data["monthly_savings"] == 0
    assert data["monthly_savings_display"] == "0.00"
    assert data["savings_sign"] == "non-positive"


def test_calc_refinance_unreadable_input_is_not_rejected():
    payload = dict(PAYLOAD, new_interest_rate="four")
    response = client.post("/v1/mortgages/refinance:calc", json=payload)
    assert response.status_code == 200
    data = response.json()
    assert data["current_payment"] == pytest.approx(1288.60, abs=0.01)
    assert data["new_payment"] is None
    assert data["monthly_savings"] is None
    assert data["new_payment_display"] == "0.00"
    assert data["savings_sign"] == "non-positive"


def test_calc_refinance_zero_rate():
    payload = dict(PAYLOAD, new_interest_rate=0)
    data = client.post("/v1/mortgages/refinance:calc", json=payload).json()
    assert data["new_payment"] is None
    assert data["new_payment_display"] == "0.00"


def test_calc_refinance_empty_body():
    data = client.post("/v1/mortgages/refinance:calc", json={}).json()
    assert data["current_payment"] is None
    assert data["monthly_savings_display"] == "0.00"


def test_calc_refinance_rejects_wrong_shape():
    response = client.post("/v1/mortgages/refinance:calc", json={"current_loan_amount": [1, 2]})
    assert response.status_code == 422


def test_api_key_required_when_configured(monkeypatch):
    monkeypatch.setattr(api, "API_KEY", "secret")
    response = client.post("/v1/mortgages/refinance:calc", json=PAYLOAD)
    assert response.status_code == 401

    response = client.post("/v1/mortgages/refinance:calc", json=PAYLOAD, headers={"x-api-key": "wrong"})
    assert response.status_code == 401

    response = client.post("/v1/mortgages/refinance:calc", json=PAYLOAD, headers={"x-api-key": "secret"})
    assert response.status_code == 200


def test_export_xlsx():
    response = client.post("/v1/mortgages/refinance:export-xlsx", json=PAYLOAD)
    assert response.status_code == 200
    assert response.headers["content-type"] == api.XLSX_MEDIA_TYPE
    assert response.headers["x-monthly-savings"] == "232.93"

    ws = load_workbook(BytesIO(response.content)).active
    assert ws["B5"].value == pytest.approx(1288.60)
    assert ws["C5"].value == pytest.approx(1055.67)
    assert ws["B7"].value == pytest.approx(232.93)
    assert ws["B7"].font.color.rgb.endswith("10B981")


def test_export_xlsx_negative_savings_is_red():
    payload = dict(PAYLOAD, new_interest_rate=8)
    response = client.post("/v1/mortgages/refinance:export-xlsx", json=payload)
    ws = load_workbook(BytesIO(response.content)).active
    assert ws["B7"].value < 0
    assert ws["B7"].font.color.rgb.endswith("EF4444")


def test_export_xlsx_leaves_nan_cells_empty():
    payload = dict(PAYLOAD, new_loan_amount="n/a")
    response = client.post("/v1/mortgages/refinance:export-xlsx", json=payload)
    assert response.status_code == 200
    ws = load_workbook(BytesIO(response.content)).active
    assert ws["C2"].value is None
    assert ws["C5"].value is None
    assert ws["B7"].value is None


def test_export_pdf():
    response = client.post("/v1/mortgages/refinance:export-pdf", json=PAYLOAD)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["x-monthly-savings"] == "232.93"
    assert response.content.startswith(b"%PDF")


def test_export_too_large(monkeypatch):
    monkeypatch.setattr(api, "MAX_EXPORT_BYTES", 10)
    response = client.post("/v1/mortgages/refinance:export-xlsx", json=PAYLOAD)
    assert response.status_code == 413


def test_export_rate_limited():
    limit = int(api.EXPORT_RATE_LIMIT.split("/")[0])
    for _ in range(limit):
        assert client.post("/v1/mortgages/refinance:export-xlsx", json=PAYLOAD).status_code == 200
    response = client.post("/v1/mortgages/refinance:export-xlsx", json=PAYLOAD)
    assert response.status_code == 429
    assert response.json() == {"detail": "Rate limit exceeded"}


def test_export_header_for_unreadable_input_matches_display():
    payload = dict(PAYLOAD, current_loan_amount="unknown")
    calc = client.post("/v1/mortgages/refinance:calc", json=payload).json()
    assert calc["monthly_savings"] is None

    for path in ("/v1/mortgages/refinance:export-pdf", "/v1/mortgages/refinance:export-xlsx"):
        response = client.post(path, json=payload)
        assert response.status_code == 200
        assert response.headers["x-monthly-savings"] == calc["monthly_savings_display"] == "0.00"

