
import pyotp
import pytest
from fastapi.testclient import TestClient

from fractown.container import build_services
from fractown.core.config import Settings
from fractown.database import build_engine
from fractown.exceptions import TransientError
from fractown.infrastructure.notifications.capture_gateway import CaptureGateway
from fractown.infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from fractown.infrastructure.security.passlib_hasher import PasslibPasswordHasher
from fractown.main import create_app
from fractown.utils import utcnow

PHONE = "+911234567890"


@pytest.fixture
def sms():
    return CaptureGateway()


@pytest.fixture
def client(tmp_path, sms):
    settings = Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'api.db'}",
        RATE_LIMIT_PER_MINUTE=1000,
        ADMIN_BOOTSTRAP_USERNAME="admin1",
        ADMIN_BOOTSTRAP_PASSWORD="correct-horse",
        ADMIN_BOOTSTRAP_EMAIL="admin1@fractown.com",
    )
    engine = build_engine(settings.DATABASE_URL)
    services = build_services(
        settings,
        engine,
        sms_gateway=sms,
        email_gateway=CaptureGateway(),
        rate_limiter=InMemoryRateLimiter(),
        hasher=PasslibPasswordHasher(rounds=4),
    )
    app = create_app(settings=settings, services=services, engine=engine)
    with TestClient(app) as c:
        yield c
    engine.dispose()


def admin_headers(client, password="correct-horse"):
    resp = client.post("/api/admin/login", json={"username": "admin1", "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['sessionToken']}"}


def totp_now(secret):
    return pyotp.TOTP(secret).at(utcnow())


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_otp_signup_flow(client, sms):
    resp = client.post("/api/auth/send-otp", json={"phoneNumber": PHONE})
    assert resp.status_code == 200
    code = sms.last_code_for(PHONE)

    resp = client.post("/api/auth/verify-otp", json={"phoneNumber": PHONE, "otp": code})
    assert resp.status_code == 400
    assert resp.json()["code"] == "NAME_REQUIRED"

    resp = client.post("/api/auth/verify-otp", json={"phoneNumber": PHONE, "otp": code, "name": "Asha"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["isNewUser"] is True
    assert body["user"]["name"] == "Asha"
    assert body["user"]["countryCode"] == "+91"
    token = body["sessionToken"]

    resp = client.get("/api/auth/user", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.json()["phoneNumber"] == PHONE

    resp = client.post("/api/auth/verify-otp", json={"phoneNumber": PHONE, "otp": code, "name": "Asha"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Invalid or expired OTP"


def test_session_cookie_fallback_and_logout(client, sms):
    client.post("/api/auth/send-otp", json={"phoneNumber": PHONE})
    resp = client.post("/api/auth/verify-otp",
                       json={"phoneNumber": PHONE, "otp": sms.last_code_for(PHONE), "name": "Asha"})
    token = resp.json()["sessionToken"]

    assert client.get("/api/auth/user").status_code == 200

    resp = client.post("/api/auth/logout", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    resp = client.get("/api/auth/user", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "data": None, "error": "Invalid session", "code": "SESSION_INVALID"}


def test_invalid_phone_rejected(client):
    resp = client.post("/api/auth/send-otp", json={"phoneNumber": "12345"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_malformed_otp_is_validation_error(client):
    resp = client.post("/api/auth/verify-otp", json={"phoneNumber": PHONE, "otp": "12ab56", "name": "Asha"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_CODE_FORMAT"


def test_send_otp_rate_limited(client):
    for _ in range(5):
        assert client.post("/api/auth/send-otp", json={"phoneNumber": PHONE}).status_code == 200
    resp = client.post("/api/auth/send-otp", json={"phoneNumber": PHONE})
    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == "60"


def test_admin_login_failures_are_uniform(client):
    unknown = client.post("/api/admin/login", json={"username": "nobody", "password": "x"})
    wrong = client.post("/api/admin/login", json={"username": "admin1", "password": "x"})

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json()


def test_user_token_cannot_reach_admin_routes(client, sms):
    client.post("/api/auth/send-otp", json={"phoneNumber": PHONE})
    token = client.post("/api/auth/verify-otp",
                        json={"phoneNumber": PHONE, "otp": sms.last_code_for(PHONE), "name": "Asha"}
                        ).json()["sessionToken"]

    resp = client.get("/api/admin/profile", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_admin_profile_and_password_change(client, sms):
    headers = admin_headers(client)

    resp = client.put("/api/admin/profile", headers=headers,
                      json={"phoneNumber": "9876543210", "countryCode": "+91"})
    assert resp.status_code == 200
    assert resp.json()["phoneNumber"] == "9876543210"

    resp = client.post("/api/admin/change-password", headers=headers,
                       json={"currentPassword": "wrong-one", "newPassword": "battery-staple"})
    assert resp.status_code == 401

    resp = client.post("/api/admin/change-password", headers=headers,
                       json={"currentPassword": "correct-horse", "newPassword": "battery-staple"})
    assert resp.status_code == 200
    assert sms.messages_for("+919876543210")
    admin_headers(client, "battery-staple")


def test_totp_enrolment_and_password_reset(client):
    headers = admin_headers(client)

    resp = client.post("/api/admin/totp/generate", headers=headers)
    assert resp.status_code == 200
    secret = resp.json()["secret"]
    assert resp.json()["otpauthUrl"].startswith("otpauth://totp/")

    resp = client.post("/api/admin/totp/verify", headers=headers, json={"token": totp_now(secret)})
    assert resp.status_code == 200
    backup_codes = resp.json()["backupCodes"]
    assert len(backup_codes) == 8

    status = client.get("/api/admin/totp/status", headers=headers).json()
    assert status == {"enabled": True, "pending": False, "backupCodesRemaining": 8}

    resp = client.post("/api/admin/forgot-password-totp",
                       json={"username": "admin1", "newPassword": "reset-pass-1", "backupCode": backup_codes[2]})
    assert resp.status_code == 200
    assert resp.json()["method"] == "backup_code"

    # existing admin sessions are revoked by the reset
    assert client.get("/api/admin/profile", headers=headers).status_code == 401

    resp = client.post("/api/admin/forgot-password-totp",
                       json={"username": "admin1", "newPassword": "reset-pass-2", "backupCode": backup_codes[2]})
    assert resp.status_code == 401

    headers = admin_headers(client, "reset-pass-1")
    resp = client.post("/api/admin/totp/disable", headers=headers)
    assert resp.status_code == 200
    assert client.get("/api/admin/totp/status", headers=headers).json()["enabled"] is False


def test_create_admin_requires_admin_session(client):
    resp = client.post("/api/admin/users",
                       json={"username": "admin2", "email": "admin2@fractown.com", "password": "long-enough"})
    assert resp.status_code == 401

    headers = admin_headers(client)
    resp = client.post("/api/admin/users", headers=headers,
                       json={"username": "admin2", "email": "admin2@fractown.com", "password": "long-enough"})
    assert resp.status_code == 201
    resp = client.post("/api/admin/users", headers=headers,
                       json={"username": "admin2", "email": "admin3@fractown.com", "password": "long-enough"})
    assert resp.status_code == 409


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/does-not-exist")
    assert resp.status_code == 404
    assert resp.json()["success"] is False


class UnavailableOtpStore:
    def replace(self, phone_number, code, expires_at):
        raise TransientError("Database unavailable")

    def is_pending(self, phone_number, code, now):
        raise TransientError("Database unavailable")

    def consume(self, phone_number, code, now):
        raise TransientError("Database unavailable")

    def purge_expired(self, now):
        return 0


def test_storage_failure_is_retryable_503(client):
    client.app.state.services.otp_login.otp_store = UnavailableOtpStore()

    resp = client.post("/api/auth/send-otp", json={"phoneNumber": PHONE})
    assert resp.status_code == 503
    assert resp.headers["Retry-After"] == "60"
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "TEMPORARILY_UNAVAILABLE"

    resp = client.post("/api/auth/verify-otp", json={"phoneNumber": PHONE, "otp": "123456", "name": "Asha"})
    assert resp.status_code == 503
    assert resp.json()["code"] == "TEMPORARILY_UNAVAILABLE"


def test_verify_otp_throttled_per_phone(client, sms):
    client.post("/api/auth/send-otp", json={"phoneNumber": PHONE})
    code = sms.last_code_for(PHONE)
    wrong = "000000" if code != "000000" else "111111"

    for _ in range(5):
        resp = client.post("/api/auth/verify-otp", json={"phoneNumber": PHONE, "otp": wrong, "name": "Asha"})
        assert resp.status_code == 401
    resp = client.post("/api/auth/verify-otp", json={"phoneNumber": PHONE, "otp": code, "name": "Asha"})
    assert resp.status_code == 429
    assert resp.json()["code"] == "RATE_LIMITED"


def test_forgot_password_totp_throttled_per_username(client):
    for _ in range(5):
        resp = client.post("/api/admin/forgot-password-totp",
                           json={"username": "admin1", "newPassword": "reset-pass-1", "totpCode": "123456"})
        assert resp.status_code == 401
    resp = client.post("/api/admin/forgot-password-totp",
                       json={"username": "admin1", "newPassword": "reset-pass-1", "totpCode": "123456"})
    assert resp.status_code == 429
